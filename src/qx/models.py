"""Query and response value objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from qx.errors import ValidationError
from qx.options import (
    MAX_TOKENS_RANGE,
    TEMPERATURE_RANGE,
    ContextSize,
    EffortLevel,
)

TIMEOUT_RANGE_S = (1, 600)


@dataclass(frozen=True)
class Query:
    """A single request to the API.

    ``Query()`` is the empty form; ``Query(None)`` is rejected.
    """

    content: str = ""
    reasoning_effort: EffortLevel = EffortLevel.MEDIUM
    search_context: ContextSize = ContextSize.MEDIUM
    timeout_s: float = 60
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.7
    max_tokens: int = 1000
    enable_web_search: bool = True

    def __post_init__(self) -> None:
        """Validate field ranges so an invalid query cannot exist."""
        if self.content is None:
            raise ValidationError(
                "Query content is required",
                hint="Pass the prompt text, or use Query() for an empty query.",
            )
        low, high = TEMPERATURE_RANGE
        if not low <= self.temperature <= high:
            raise ValidationError(
                f"Temperature must be between 0.0 and 2.0, got {self.temperature}"
            )
        low, high = MAX_TOKENS_RANGE
        if not low <= self.max_tokens <= high:
            raise ValidationError(
                f"MaxTokens must be between 1 and 4096, got {self.max_tokens}"
            )
        low, high = TIMEOUT_RANGE_S
        if not low <= self.timeout_s <= high:
            raise ValidationError(
                f"Timeout must be between 1 and 600 seconds, got {self.timeout_s}"
            )


@dataclass
class ResponseMetadata:
    """Bookkeeping attached to a response."""

    model: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    response_time_s: float = 0.0
    web_search_used: bool = False
    web_search_results_count: int = 0
    finish_reason: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class Response:
    """Outcome of one query."""

    content: str = ""
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)
    is_complete: bool = False
    error_message: str | None = None

    @property
    def is_success(self) -> bool:
        """True when complete and no error was recorded."""
        return not self.error_message and self.is_complete

    @classmethod
    def success(cls, content: str | None) -> Response:
        """Create a completed, successful response."""
        return cls(content=content or "", is_complete=True)

    @classmethod
    def failure(cls, error_message: str) -> Response:
        """Create a completed response that carries an error."""
        return cls(error_message=error_message, is_complete=True)
