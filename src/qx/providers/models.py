"""Domain models for the provider transport layer.

SDK output items arrive as a heterogeneous list; they are converted into the
closed ``ResponseItem`` union below so the normalization walk can match on
every known kind plus an explicit unknown variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class MessageItem:
    """An assistant message carrying zero or more text segments."""

    texts: tuple[str, ...] = ()
    #: URLs cited from web search results, in order of appearance.
    citations: tuple[str, ...] = ()


@dataclass(frozen=True)
class WebSearchCallItem:
    """A web search the model ran; it contributes no visible text."""

    status: str | None = None


@dataclass(frozen=True)
class FunctionCallItem:
    """A function call requested by the model."""

    name: str
    arguments: str = "{}"
    call_id: str | None = None


@dataclass(frozen=True)
class UnknownItem:
    """Any output item kind this client does not interpret."""

    type: str


ResponseItem = MessageItem | WebSearchCallItem | FunctionCallItem | UnknownItem


def to_response_item(raw: Any) -> ResponseItem:
    """Convert one SDK output item (object or dict) into a ``ResponseItem``."""
    item_type = _field(raw, "type")
    match item_type:
        case "message":
            texts: list[str] = []
            citations: list[str] = []
            for part in _field(raw, "content") or []:
                text = _field(part, "text")
                if isinstance(text, str):
                    texts.append(text)
                for annotation in _field(part, "annotations") or []:
                    url = _field(annotation, "url")
                    if _field(annotation, "type") == "url_citation" and url:
                        citations.append(str(url))
            return MessageItem(texts=tuple(texts), citations=tuple(citations))
        case "web_search_call":
            status = _field(raw, "status")
            return WebSearchCallItem(status=status if isinstance(status, str) else None)
        case "function_call":
            return FunctionCallItem(
                name=str(_field(raw, "name") or ""),
                arguments=_field(raw, "arguments") or "{}",
                call_id=_field(raw, "call_id"),
            )
        case _:
            return UnknownItem(type=str(item_type or "unknown"))


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


# --- Verbose details (serialized as JSON for -v output) ---


class RequestOptionsInfo(BaseModel):
    """Request options echoed back in the details block."""

    temperature: float
    max_tokens: int | None = None
    web_search_enabled: bool = False


class UsageInfo(BaseModel):
    """Token usage reported by the API."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ContentInfo(BaseModel):
    """Text segment count and truncated previews of a message item."""

    content_count: int = 0
    text_previews: list[str] = Field(default_factory=list)


class ItemInfo(BaseModel):
    """Summary of one output item."""

    type: str
    content: ContentInfo | None = None
    web_search_status: str | None = None
    function_name: str | None = None


class ResponseMetadataInfo(BaseModel):
    """Response-level summary."""

    output_items_count: int | None = None
    finish_reason: str | None = None
    usage: UsageInfo | None = None
    items: list[ItemInfo] | None = None


class ResponseDetails(BaseModel):
    """Structured summary of a request/response pair for verbose display."""

    model: str = ""
    request_options: RequestOptionsInfo
    response_metadata: ResponseMetadataInfo = Field(
        default_factory=ResponseMetadataInfo
    )

    def to_json(self) -> str:
        """Indented JSON with unset (``None``) fields omitted."""
        return self.model_dump_json(indent=2, exclude_none=True)


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Return the first *limit* characters, with an ellipsis when truncated."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def describe_item(item: ResponseItem) -> ItemInfo:
    """Build the ``ItemInfo`` entry for one response item."""
    match item:
        case MessageItem(texts=texts):
            return ItemInfo(
                type="message",
                content=ContentInfo(
                    content_count=len(texts),
                    text_previews=[preview(t) for t in texts],
                ),
            )
        case WebSearchCallItem(status=status):
            return ItemInfo(type="web_search_call", web_search_status=status)
        case FunctionCallItem(name=name):
            return ItemInfo(type="function_call", function_name=name)
        case UnknownItem(type=item_type):
            return ItemInfo(type=item_type)
