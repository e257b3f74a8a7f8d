"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: fake SDK clients for the adapter tests
and a fake completion service for the CLI/handler tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

from qx.providers.models import RequestOptionsInfo, ResponseDetails
from qx.retry import RetryPolicy

# Retry quickly in tests that exercise the retry loop.
FAST_RETRY = RetryPolicy(max_attempts=2, initial_delay_s=0.001, max_delay_s=0.001)
NO_RETRY = RetryPolicy(max_attempts=0)


def message_item(*texts: str, citations: tuple[str, ...] = ()) -> SimpleNamespace:
    """SDK-shaped assistant message with one output_text part per text."""
    annotations = [SimpleNamespace(type="url_citation", url=url) for url in citations]
    content = [
        SimpleNamespace(type="output_text", text=text, annotations=annotations)
        for text in texts
    ]
    return SimpleNamespace(type="message", role="assistant", content=content)


def function_call_item(name: str, arguments: str, call_id: str = "call_1") -> SimpleNamespace:
    """SDK-shaped function_call output item."""
    return SimpleNamespace(
        type="function_call", name=name, arguments=arguments, call_id=call_id
    )


def web_search_item(status: str = "completed") -> SimpleNamespace:
    """SDK-shaped web_search_call output item."""
    return SimpleNamespace(type="web_search_call", status=status, id="ws_1")


def fake_response(
    *items: Any,
    model: str = "gpt-4o-mini",
    status: str = "completed",
    usage: tuple[int, int] | None = (12, 30),
    incomplete_reason: str | None = None,
) -> SimpleNamespace:
    """SDK-shaped Response object."""
    usage_obj = None
    if usage is not None:
        usage_obj = SimpleNamespace(
            input_tokens=usage[0],
            output_tokens=usage[1],
            total_tokens=usage[0] + usage[1],
        )
    details = (
        SimpleNamespace(reason=incomplete_reason) if incomplete_reason is not None else None
    )
    return SimpleNamespace(
        id="resp_1",
        model=model,
        status=status,
        incomplete_details=details,
        output=list(items),
        usage=usage_obj,
    )


class FakeResponses:
    """Captures kwargs passed to responses.create() and replays scripted results.

    Each scripted entry is either a value to return or an exception to raise;
    the last entry repeats once the script is exhausted.
    """

    def __init__(self, *script: Any) -> None:
        self.script = list(script) or [fake_response(message_item("ok"))]
        self.calls: list[dict[str, Any]] = []

    @property
    def last_kwargs(self) -> dict[str, Any] | None:
        return self.calls[-1] if self.calls else None

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        index = min(len(self.calls) - 1, len(self.script) - 1)
        result = self.script[index]
        if isinstance(result, BaseException):
            raise result
        return result


class FakeClient:
    """Minimal AsyncOpenAI stand-in."""

    def __init__(self, responses: FakeResponses) -> None:
        self.responses = responses
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeStream:
    """Async iterator over scripted stream events."""

    def __init__(self, *events: Any) -> None:
        self._events = list(events)
        self.closed = False

    async def close(self) -> None:
        self.closed = True

    def __aiter__(self) -> FakeStream:
        return self

    async def __anext__(self) -> Any:
        if not self._events:
            raise StopAsyncIteration
        event = self._events.pop(0)
        if isinstance(event, BaseException):
            raise event
        return event


def text_delta(delta: str) -> SimpleNamespace:
    """A ``response.output_text.delta`` stream event."""
    return SimpleNamespace(type="response.output_text.delta", delta=delta)


@dataclass
class FakeService:
    """CompletionService double for handler and CLI tests."""

    text: str = "fake answer"
    chunks: tuple[str, ...] = ("fake ", "answer")
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)
    closed: bool = False

    async def get_completion(
        self,
        prompt: str,
        options: Any,
        *,
        enable_function_calling: bool = False,
        show_function_calls: bool = True,
    ) -> str:
        self.calls.append(
            {
                "method": "get_completion",
                "prompt": prompt,
                "options": options,
                "enable_function_calling": enable_function_calling,
            }
        )
        if self.error is not None:
            raise self.error
        return self.text

    async def get_completion_with_details(
        self,
        prompt: str,
        options: Any,
        *,
        enable_function_calling: bool = False,
        show_function_calls: bool = True,
    ) -> tuple[str, ResponseDetails]:
        self.calls.append(
            {
                "method": "get_completion_with_details",
                "prompt": prompt,
                "options": options,
                "enable_function_calling": enable_function_calling,
            }
        )
        if self.error is not None:
            raise self.error
        details = ResponseDetails(
            model=options.model,
            request_options=RequestOptionsInfo(
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                web_search_enabled=options.enable_web_search,
            ),
        )
        return self.text, details

    async def stream(self, prompt: str, options: Any):
        self.calls.append({"method": "stream", "prompt": prompt, "options": options})
        if self.error is not None:
            raise self.error
        for chunk in self.chunks:
            yield chunk

    async def aclose(self) -> None:
        self.closed = True
