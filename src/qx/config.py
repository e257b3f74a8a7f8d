"""Configuration: frozen application settings resolved from the environment."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from typing import TYPE_CHECKING

from qx.options import ApiOptions
from qx.retry import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Mapping

API_KEY_ENV = "OPENAI_API_KEY"
BASE_URL_ENV = "OPENAI_API_BASE_URL"
ORGANIZATION_ENV = "OPENAI_ORGANIZATION_ID"
DEBUG_ENV = "QX_DEBUG"
TIMEOUT_ENV = "QX_TIMEOUT"


def _parse_bool(raw: str | None) -> bool | None:
    """Parse ``true``/``false`` (any case); anything else is ``None``."""
    if raw is None:
        return None
    value = raw.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def _parse_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class Configuration:
    """Immutable application configuration.

    Example:
        config = Configuration.from_environment()
        if not config.validate():
            ...
    """

    api_key: str = ""
    options: ApiOptions = field(default_factory=ApiOptions)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    base_url: str | None = None
    debug: bool = False
    organization_id: str | None = None

    def validate(self) -> bool:
        """Return True for a non-blank key with valid options and retry policy."""
        if not self.api_key or not self.api_key.strip():
            return False
        return self.options.validate() and self.retry.validate()

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> Configuration:
        """Build a configuration from environment variables.

        Parsing is permissive: unparseable ``QX_DEBUG``/``QX_TIMEOUT`` values
        are ignored and the defaults kept.
        """
        env = os.environ if environ is None else environ

        options = ApiOptions()
        timeout = _parse_int(env.get(TIMEOUT_ENV))
        if timeout is not None:
            options = replace(options, default_timeout_s=float(timeout))

        debug = _parse_bool(env.get(DEBUG_ENV))

        return cls(
            api_key=env.get(API_KEY_ENV) or "",
            options=options,
            base_url=env.get(BASE_URL_ENV) or None,
            debug=bool(debug),
            organization_id=env.get(ORGANIZATION_ENV) or None,
        )

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Configuration(api_key={'[REDACTED]' if self.api_key else None}, "
            f"model={self.options.default_model!r}, base_url={self.base_url!r}, "
            f"organization_id={self.organization_id!r}, debug={self.debug})"
        )

    __repr__ = __str__
