"""Small HTTP-related constants shared across qx."""

from __future__ import annotations

# Retryable status codes shared by provider mapping and the retry loop.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

AUTH_STATUS_CODES: frozenset[int] = frozenset({401, 403})
