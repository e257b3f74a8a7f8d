"""Exception hierarchy for qx.

Every error carries the process exit code the CLI reports for it, so the
command boundary can translate failures without a lookup table.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class QxError(Exception):
    """Base exception for all qx errors."""

    exit_code: int = 1

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ValidationError(QxError):
    """An option or argument value is out of range or malformed."""


class AuthenticationError(QxError):
    """The API key is missing or was rejected."""

    exit_code = 3


class NetworkError(QxError):
    """The API could not be reached."""

    exit_code = 3


class RequestTimeoutError(QxError):
    """The outbound call exceeded its deadline."""

    exit_code = 124


class FileAccessError(QxError):
    """The output file could not be opened (permissions, missing directory)."""

    exit_code = 4


class OutputError(QxError):
    """Writing the response failed for another I/O reason."""

    exit_code = 5


class APIError(QxError):
    """API call failed.

    The provider mapping attaches retry metadata so the retry loop can decide
    without brittle substring matching.
    """

    exit_code = 2

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        retry_after_s: float | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = retryable
        self.status_code = status_code
        self.retry_after_s = retry_after_s
        self.provider = provider
        self.phase = phase


class RateLimitError(APIError):
    """Rate limit exceeded (HTTP 429)."""


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
