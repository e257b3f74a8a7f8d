"""Service protocol: the minimal interface the command handler depends on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from qx.options import QueryOptions
    from qx.providers.models import ResponseDetails


@runtime_checkable
class CompletionService(Protocol):
    """Completion, detailed completion, streaming, and cleanup."""

    async def get_completion(
        self,
        prompt: str,
        options: QueryOptions,
        *,
        enable_function_calling: bool = False,
        show_function_calls: bool = True,
    ) -> str:
        """Return the flattened response text."""
        ...

    async def get_completion_with_details(
        self,
        prompt: str,
        options: QueryOptions,
        *,
        enable_function_calling: bool = False,
        show_function_calls: bool = True,
    ) -> tuple[str, ResponseDetails]:
        """Return the response text plus a structured summary."""
        ...

    def stream(self, prompt: str, options: QueryOptions) -> AsyncIterator[str]:
        """Yield response text chunks in arrival order."""
        ...

    async def aclose(self) -> None:
        """Release client resources."""
        ...
