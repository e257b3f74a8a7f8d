"""Option models: API defaults and per-request query options."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import enum
from types import MappingProxyType
from typing import TYPE_CHECKING, TypeVar

from qx.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from qx.models import Query


class EffortLevel(enum.StrEnum):
    """Coarse reasoning-depth hint."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: str | EffortLevel) -> EffortLevel:
        """Parse a level case-insensitively."""
        return _parse_level(cls, value, "effort level")


class ContextSize(enum.StrEnum):
    """Coarse hint for how much search/context breadth to request."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: str | ContextSize) -> ContextSize:
        """Parse a size case-insensitively."""
        return _parse_level(cls, value, "context size")


E = TypeVar("E", bound=enum.StrEnum)


def _parse_level(enum_cls: type[E], value: str | E, label: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Unknown {label}: {value!r}",
            hint=f"Use one of: {allowed}.",
        ) from None


DEFAULT_ALLOWED_MODELS: frozenset[str] = frozenset(
    {
        "gpt-5",
        "gpt-5-mini",
        "gpt-5-nano",
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4-turbo",
        "gpt-4",
        "gpt-3.5-turbo",
    }
)

TEMPERATURE_RANGE = (0.0, 2.0)
MAX_TOKENS_RANGE = (1, 4096)
RATE_LIMIT_RANGE = (1, 1000)
TOKEN_LIMIT_RANGE = (1000, 1_000_000)


def _in_range(value: float, bounds: tuple[float, float]) -> bool:
    low, high = bounds
    return low <= value <= high


@dataclass(frozen=True)
class ApiOptions:
    """Defaults applied to every API call, optionally overridden per invocation."""

    default_effort: EffortLevel = EffortLevel.MEDIUM
    default_context: ContextSize = ContextSize.MEDIUM
    default_timeout_s: float = 60.0
    default_model: str = "gpt-5"
    default_temperature: float = 1.0
    default_max_tokens: int = 1000
    enable_web_search_by_default: bool = True
    stream_responses_by_default: bool = True
    system_prompt: str | None = None
    allowed_models: frozenset[str] = DEFAULT_ALLOWED_MODELS
    #: Sent as default headers on the SDK client.
    custom_headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    rate_limit_per_minute: int = 60
    token_limit_per_minute: int = 90_000

    def validation_errors(self) -> list[str]:
        """Return a description of every violated constraint (empty when valid)."""
        errors: list[str] = []
        if not self.default_model or not self.default_model.strip():
            errors.append("default model must not be empty")
        if not _in_range(self.default_temperature, TEMPERATURE_RANGE):
            errors.append(
                f"temperature must be between 0.0 and 2.0, got {self.default_temperature}"
            )
        if not _in_range(self.default_max_tokens, MAX_TOKENS_RANGE):
            errors.append(
                f"max tokens must be between 1 and 4096, got {self.default_max_tokens}"
            )
        if self.default_timeout_s <= 0:
            errors.append(f"timeout must be > 0, got {self.default_timeout_s}")
        if not _in_range(self.rate_limit_per_minute, RATE_LIMIT_RANGE):
            errors.append(
                "rate limit per minute must be between 1 and 1000, "
                f"got {self.rate_limit_per_minute}"
            )
        if not _in_range(self.token_limit_per_minute, TOKEN_LIMIT_RANGE):
            errors.append(
                "token limit per minute must be between 1000 and 1000000, "
                f"got {self.token_limit_per_minute}"
            )
        if not self.allowed_models:
            errors.append("allowed models must not be empty")
        elif self.default_model and not self.is_model_allowed(self.default_model):
            errors.append(f"model {self.default_model!r} is not allowed")
        return errors

    def validate(self) -> bool:
        """Return True when every field is within its allowed range."""
        return not self.validation_errors()

    def is_model_allowed(self, model: str | None) -> bool:
        """Return True for a non-blank model listed in ``allowed_models``."""
        return bool(model and model.strip()) and model in self.allowed_models

    def merge_with_command_line(
        self,
        model: str | None,
        temperature: float | None,
        max_tokens: int | None,
    ) -> ApiOptions:
        """Return a copy with command-line overrides applied.

        ``None`` and blank-string overrides keep the current value.
        """
        return replace(
            self,
            default_model=model if model and model.strip() else self.default_model,
            default_temperature=(
                temperature if temperature is not None else self.default_temperature
            ),
            default_max_tokens=(
                max_tokens if max_tokens is not None else self.default_max_tokens
            ),
            allowed_models=frozenset(self.allowed_models),
            custom_headers=MappingProxyType(dict(self.custom_headers)),
        )


@dataclass(frozen=True)
class QueryOptions:
    """Per-request options consumed by the API adapter."""

    effort_level: str = "medium"
    context_size: str = "medium"
    enable_web_search: bool = True
    timeout_seconds: float = 60
    model: str = "gpt-4o-mini"
    #: ``None`` leaves output length to the API.
    max_tokens: int | None = None
    temperature: float = 0.7
    system_prompt: str | None = None

    @classmethod
    def from_query(
        cls,
        query: Query,
        *,
        max_tokens: int | None = None,
        system_prompt: str | None = None,
    ) -> QueryOptions:
        """Build request options from a validated query.

        ``max_tokens`` is passed separately because an unset cap means
        "unlimited" on the wire, while ``Query.max_tokens`` is always set.
        """
        return cls(
            effort_level=query.reasoning_effort.value,
            context_size=query.search_context.value,
            enable_web_search=query.enable_web_search,
            timeout_seconds=query.timeout_s,
            model=query.model,
            max_tokens=max_tokens,
            temperature=query.temperature,
            system_prompt=system_prompt,
        )
