"""OpenAI Responses API adapter."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from qx.errors import QxError, RequestTimeoutError, ValidationError
from qx.models import Response, ResponseMetadata
from qx.options import ContextSize, EffortLevel
from qx.providers._errors import wrap_provider_error
from qx.providers.models import (
    FunctionCallItem,
    MessageItem,
    RequestOptionsInfo,
    ResponseDetails,
    ResponseItem,
    ResponseMetadataInfo,
    UnknownItem,
    UsageInfo,
    WebSearchCallItem,
    describe_item,
    to_response_item,
)
from qx.retry import RetryPolicy, retry_async
from qx.tools import ToolService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from qx.options import QueryOptions

logger = logging.getLogger(__name__)

#: Returned instead of an empty string so callers never write a blank reply.
NO_CONTENT_MESSAGE = "No text content was returned by the model."

_INCOMPLETE_REASONS = frozenset({"incomplete", "max_output_tokens", "content_filter"})

_EFFORT_PHRASES = {
    EffortLevel.LOW: "Be concise and direct. Provide quick answers.",
    EffortLevel.MEDIUM: "Provide balanced and clear responses.",
    EffortLevel.HIGH: "Think step by step. Provide detailed and thorough analysis.",
}
_CONTEXT_PHRASES = {
    ContextSize.LOW: "Focus on the immediate question only.",
    ContextSize.MEDIUM: "Consider relevant context as needed.",
    ContextSize.HIGH: "Consider broader context and implications.",
}


class OpenAIService:
    """Send prompts to the Responses API and flatten the output to text."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        organization: str | None = None,
        default_headers: Mapping[str, str] | None = None,
        tools: ToolService | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        """Initialize with an API key; the SDK client is created lazily."""
        if not api_key or not api_key.strip():
            raise ValueError("api_key must be a non-empty string")
        self.api_key = api_key
        self.base_url = base_url
        self.organization = organization
        self.default_headers = dict(default_headers or {})
        self.tools = tools if tools is not None else ToolService()
        self.retry = retry if retry is not None else RetryPolicy()
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI

            # Retries are owned by qx.retry, so the SDK's own are disabled.
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                organization=self.organization,
                default_headers=self.default_headers or None,
                max_retries=0,
            )
        return self._client

    def build_request(
        self,
        prompt: str,
        options: QueryOptions,
        *,
        enable_function_calling: bool = False,
    ) -> dict[str, Any]:
        """Return the keyword arguments for ``responses.create``."""
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")

        create_kwargs: dict[str, Any] = {
            "model": options.model,
            "input": [
                {"role": "user", "content": [{"type": "input_text", "text": prompt}]}
            ],
            "instructions": options.system_prompt
            or system_prompt_for(options.effort_level, options.context_size),
            "temperature": options.temperature,
        }
        if options.max_tokens is not None:
            create_kwargs["max_output_tokens"] = options.max_tokens

        tools: list[dict[str, Any]] = []
        if options.enable_web_search:
            tools.append(
                {
                    "type": "web_search",
                    "search_context_size": ContextSize.parse(
                        options.context_size
                    ).value,
                }
            )
        if enable_function_calling:
            tools.extend(self.tools.available_tools)
        if tools:
            create_kwargs["tools"] = tools
        return create_kwargs

    async def _create(self, create_kwargs: dict[str, Any], timeout_s: float) -> Any:
        """Call ``responses.create`` under a deadline, retrying per policy."""
        client = self._get_client()

        async def attempt() -> Any:
            try:
                return await asyncio.wait_for(
                    client.responses.create(**create_kwargs), timeout=timeout_s
                )
            except asyncio.CancelledError:
                raise
            except TimeoutError as e:
                raise RequestTimeoutError(
                    f"Query timed out after {timeout_s:g} seconds",
                    hint="Increase QX_TIMEOUT or simplify the prompt.",
                ) from e
            except Exception as e:
                raise wrap_provider_error(
                    e,
                    provider="openai",
                    phase="generate",
                    message="OpenAI request failed",
                ) from e

        return await retry_async(attempt, policy=self.retry)

    async def _complete(
        self,
        prompt: str,
        options: QueryOptions,
        *,
        enable_function_calling: bool,
        show_function_calls: bool,
    ) -> tuple[Response, ResponseDetails]:
        create_kwargs = self.build_request(
            prompt, options, enable_function_calling=enable_function_calling
        )
        started = time.monotonic()
        raw = await self._create(create_kwargs, options.timeout_seconds)
        elapsed = time.monotonic() - started

        items = [to_response_item(item) for item in getattr(raw, "output", None) or []]
        text = render_items(
            items, self.tools, show_function_calls=show_function_calls
        )

        finish_reason = _extract_finish_reason(raw)
        usage = _extract_usage(raw)
        model = getattr(raw, "model", None) or options.model
        citations = {
            url
            for item in items
            if isinstance(item, MessageItem)
            for url in item.citations
        }

        metadata = ResponseMetadata(
            model=model,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
            response_time_s=elapsed,
            web_search_used=any(isinstance(i, WebSearchCallItem) for i in items),
            web_search_results_count=len(citations),
            finish_reason=finish_reason or "",
        )
        response = Response(
            content=text,
            metadata=metadata,
            is_complete=finish_reason not in _INCOMPLETE_REASONS,
        )
        details = ResponseDetails(
            model=model,
            request_options=RequestOptionsInfo(
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                web_search_enabled=options.enable_web_search,
            ),
            response_metadata=ResponseMetadataInfo(
                output_items_count=len(items),
                finish_reason=finish_reason,
                usage=usage,
                items=[describe_item(item) for item in items],
            ),
        )
        logger.debug(
            "Response from %s: %d output items, %d tokens, %.2fs",
            model,
            len(items),
            usage.total_tokens,
            elapsed,
        )
        return response, details

    async def get_response(
        self,
        prompt: str,
        options: QueryOptions,
        *,
        enable_function_calling: bool = False,
        show_function_calls: bool = True,
    ) -> Response:
        """Run one query and return the text with its metadata."""
        response, _ = await self._complete(
            prompt,
            options,
            enable_function_calling=enable_function_calling,
            show_function_calls=show_function_calls,
        )
        return response

    async def get_completion(
        self,
        prompt: str,
        options: QueryOptions,
        *,
        enable_function_calling: bool = False,
        show_function_calls: bool = True,
    ) -> str:
        """Run one query and return only the flattened text."""
        response = await self.get_response(
            prompt,
            options,
            enable_function_calling=enable_function_calling,
            show_function_calls=show_function_calls,
        )
        return response.content

    async def get_completion_with_details(
        self,
        prompt: str,
        options: QueryOptions,
        *,
        enable_function_calling: bool = False,
        show_function_calls: bool = True,
    ) -> tuple[str, ResponseDetails]:
        """Run one query and also return a structured summary for verbose output."""
        response, details = await self._complete(
            prompt,
            options,
            enable_function_calling=enable_function_calling,
            show_function_calls=show_function_calls,
        )
        return response.content, details

    async def stream(self, prompt: str, options: QueryOptions) -> AsyncIterator[str]:
        """Yield text deltas in arrival order. Function calling is not available."""
        create_kwargs = self.build_request(prompt, options)
        create_kwargs["stream"] = True
        events = await self._create(create_kwargs, options.timeout_seconds)

        try:
            async with asyncio.timeout(options.timeout_seconds):
                async for event in events:
                    if getattr(event, "type", None) != "response.output_text.delta":
                        continue
                    delta = getattr(event, "delta", None)
                    if delta:
                        yield delta
        except TimeoutError as e:
            raise RequestTimeoutError(
                f"Stream timed out after {options.timeout_seconds:g} seconds",
                hint="Increase QX_TIMEOUT or simplify the prompt.",
            ) from e
        except QxError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider="openai", phase="stream", message="OpenAI stream failed"
            ) from e
        finally:
            close = getattr(events, "close", None)
            if close is not None:
                await close()

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def system_prompt_for(effort_level: str, context_size: str) -> str:
    """Default instructions phrased from the effort and context hints.

    Unrecognized levels read as medium.
    """
    try:
        effort = EffortLevel.parse(effort_level)
    except ValidationError:
        effort = EffortLevel.MEDIUM
    try:
        context = ContextSize.parse(context_size)
    except ValidationError:
        context = ContextSize.MEDIUM
    return (
        "You are a helpful AI assistant. "
        f"{_EFFORT_PHRASES[effort]} {_CONTEXT_PHRASES[context]}"
    )


def render_items(
    items: list[ResponseItem],
    tools: ToolService,
    *,
    show_function_calls: bool = True,
) -> str:
    """Flatten response items into display text, running function calls inline."""
    parts: list[str] = []
    for item in items:
        match item:
            case MessageItem(texts=texts):
                text = "".join(texts)
                if text:
                    parts.append(text)
            case WebSearchCallItem(status=status):
                logger.debug("Web search call (status=%s)", status)
            case FunctionCallItem(name=name, arguments=arguments):
                result = tools.execute_function(name, arguments)
                logger.debug("Function call %s -> %s", name, result)
                parts.append(
                    f"[Function Call: {name}]\n{result}" if show_function_calls else result
                )
            case UnknownItem(type=item_type):
                logger.debug("Ignoring output item of type %s", item_type)

    text = "\n\n".join(parts)
    return text if text.strip() else NO_CONTENT_MESSAGE


def _extract_usage(response: Any) -> UsageInfo:
    usage_raw = getattr(response, "usage", None)
    if usage_raw is None:
        return UsageInfo()
    return UsageInfo(
        prompt_tokens=int(getattr(usage_raw, "input_tokens", 0) or 0),
        completion_tokens=int(getattr(usage_raw, "output_tokens", 0) or 0),
        total_tokens=int(getattr(usage_raw, "total_tokens", 0) or 0),
    )


def _extract_finish_reason(response: Any) -> str | None:
    """Extract the finish reason, preferring ``incomplete_details.reason``.

    The Responses API exposes ``response.status`` ("completed", "incomplete",
    ...) and, when incomplete, an ``incomplete_details.reason`` such as
    "max_output_tokens" or "content_filter".
    """
    status = getattr(response, "status", None)
    if not isinstance(status, str):
        return None

    normalized_status = status.lower()
    if normalized_status == "incomplete":
        details = getattr(response, "incomplete_details", None)
        reason = getattr(details, "reason", None) if details is not None else None
        if isinstance(reason, str) and reason:
            return reason.lower()

    return normalized_status
