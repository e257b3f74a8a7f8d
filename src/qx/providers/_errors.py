"""Map SDK exceptions into the qx error taxonomy.

The mapping attaches status and retry metadata so the retry loop and the CLI
exit codes never depend on matching error text.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import openai

from qx._http import AUTH_STATUS_CODES, RETRYABLE_STATUS_CODES
from qx.config import API_KEY_ENV
from qx.errors import (
    APIError,
    AuthenticationError,
    NetworkError,
    QxError,
    RateLimitError,
    RequestTimeoutError,
    _walk_exception_chain,
)


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def extract_retry_after_s(exc: BaseException) -> float | None:
    """Walk the exception chain to find a ``Retry-After`` delay in seconds."""
    for e in _walk_exception_chain(exc):
        value = getattr(e, "retry_after", None)
        if isinstance(value, (int, float)) and value >= 0:
            return float(value)

        response = getattr(e, "response", None)
        headers: Any = getattr(response, "headers", None)
        if headers is None:
            continue
        raw: Any = None
        try:
            raw = headers.get("Retry-After")
        except Exception:
            raw = None
        if isinstance(raw, str) and raw.strip():
            try:
                seconds = float(raw)
            except ValueError:
                continue
            if seconds >= 0:
                return seconds
    return None


def _is_timeout(exc: BaseException) -> bool:
    return any(
        isinstance(
            e,
            (
                TimeoutError,
                asyncio.TimeoutError,
                httpx.TimeoutException,
                openai.APITimeoutError,
            ),
        )
        for e in _walk_exception_chain(exc)
    )


def _is_connection_error(exc: BaseException) -> bool:
    return any(
        isinstance(e, (httpx.RequestError, openai.APIConnectionError))
        for e in _walk_exception_chain(exc)
    )


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    message: str | None = None,
) -> QxError:
    """Map an SDK exception into a ``QxError`` with stable metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already mapped: fill in missing context only.
    if isinstance(exc, APIError):
        if exc.provider is None:
            exc.provider = provider
        if exc.phase is None:
            exc.phase = phase
        return exc
    if isinstance(exc, QxError):
        return exc

    msg = message or f"{provider} {phase} failed"
    cause = str(exc)
    status_code = extract_status_code(exc)

    if status_code is None and _is_timeout(exc):
        return RequestTimeoutError(
            f"{msg}: request timed out",
            hint="Increase QX_TIMEOUT or retry later.",
        )
    if status_code is None and _is_connection_error(exc):
        return NetworkError(
            f"{msg}: {cause}" if cause else msg,
            hint="Check your network connection and OPENAI_API_BASE_URL.",
        )

    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    full_message = f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}"

    if status_code in AUTH_STATUS_CODES:
        return AuthenticationError(
            full_message,
            hint=f"Check credentials/permissions (try setting {API_KEY_ENV}).",
        )

    retry_after_s = extract_retry_after_s(exc)
    retryable = isinstance(status_code, int) and status_code in RETRYABLE_STATUS_CODES

    err_cls: type[APIError] = RateLimitError if status_code == 429 else APIError
    return err_cls(
        full_message,
        retryable=retryable,
        status_code=status_code,
        retry_after_s=retry_after_s,
        provider=provider,
        phase=phase,
    )
