"""Bounded async retry with an explicit, validated policy.

The policy is a plain value object; ``retry_async`` wraps the single outbound
call and consults ``should_retry`` so retry decisions follow the policy flags
instead of substring matching on error text.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, TypeVar

from qx.errors import APIError, NetworkError, RateLimitError, RequestTimeoutError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy.

    ``max_attempts`` counts retries after the first call, so ``0`` disables
    retrying entirely.
    """

    max_attempts: int = 3
    initial_delay_s: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay_s: float = 30.0
    retry_on_timeout: bool = True
    retry_on_rate_limit: bool = True

    def calculate_delay(self, attempt: int) -> float:
        """Return the delay in seconds before retry *attempt* (0-based).

        Raises:
            ValueError: If *attempt* is negative.
        """
        if attempt < 0:
            raise ValueError(f"attempt must be >= 0, got {attempt}")
        delay = self.initial_delay_s * (self.backoff_multiplier**attempt)
        return min(delay, self.max_delay_s)

    def validate(self) -> bool:
        """Return True when every field is within its allowed range."""
        return (
            0 <= self.max_attempts <= 10
            and self.initial_delay_s > 0
            and 1.0 <= self.backoff_multiplier <= 5.0
            and self.max_delay_s > 0
        )


def should_retry(policy: RetryPolicy, exc: BaseException) -> bool:
    """Return True when *exc* is worth another attempt under *policy*.

    Contract:
    - Cancellation is never retried.
    - Timeouts and rate limits follow their policy flags.
    - Other API errors are retried only when the provider marked them retryable.
    - Transport failures are retried; everything else is not.
    """
    if isinstance(exc, asyncio.CancelledError):
        return False
    if isinstance(exc, RequestTimeoutError):
        return policy.retry_on_timeout
    if isinstance(exc, RateLimitError):
        return policy.retry_on_rate_limit
    if isinstance(exc, APIError):
        return exc.retryable is True
    return isinstance(exc, NetworkError)


async def retry_async(
    factory: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run an async factory, retrying per *policy*."""
    retry_index = 0
    while True:
        try:
            return await factory()
        except Exception as exc:
            if retry_index >= policy.max_attempts or not should_retry(policy, exc):
                raise

            delay = policy.calculate_delay(retry_index)
            retry_after = getattr(exc, "retry_after_s", None)
            if isinstance(retry_after, (int, float)) and retry_after > delay:
                delay = min(float(retry_after), policy.max_delay_s)

            logger.debug(
                "Retrying after %s (retry %d/%d, sleeping %.2fs)",
                type(exc).__name__,
                retry_index + 1,
                policy.max_attempts,
                delay,
            )
            retry_index += 1
            await sleep(delay)
