"""Bounded retry combinator and backoff helpers.

Every remote step (login, navigation, extraction, fallback call) goes through
`with_retry` so attempt counts, backoff and logging behave the same way.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from ..exceptions import RetryExhaustedError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BackoffStrategy(str, Enum):
    """How the delay grows between attempts."""
    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True if the exception appears to be a rate limit (e.g. HTTP 429)."""
    msg = str(exc).lower()
    return "rate limit" in msg or "429" in msg or "too many requests" in msg


def compute_backoff_delay(
    attempt: int,
    initial_delay: float = 1.0,
    factor: float = 2.0,
    max_delay: float = 60.0,
    rate_limit_min: float | None = None,
    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL,
) -> float:
    """
    Compute delay in seconds before the next attempt.

    Args:
        attempt: Current attempt index (0-based).
        initial_delay: Base delay for attempt 0.
        factor: Multiplier per attempt for exponential backoff.
        max_delay: Cap on delay.
        rate_limit_min: If set, returned delay is at least this (e.g. 60 for rate limits).
        strategy: fixed (initial_delay), linear (initial_delay * (attempt + 1)) or exponential.

    Returns:
        Delay in seconds.
    """
    if strategy == BackoffStrategy.FIXED:
        delay = initial_delay
    elif strategy == BackoffStrategy.LINEAR:
        delay = initial_delay * (attempt + 1)
    else:
        delay = initial_delay * (factor ** attempt)
    delay = min(delay, max_delay)
    if rate_limit_min is not None and delay < rate_limit_min:
        return rate_limit_min
    return delay


async def with_retry(
    task: Callable[[int], Awaitable[T]],
    *,
    attempts: int = 3,
    backoff: float = 0.8,
    strategy: BackoffStrategy = BackoffStrategy.LINEAR,
    label: str = "step",
    max_delay: float = 60.0,
    is_retryable: Optional[Callable[[BaseException], bool]] = None,
    log: Optional[logging.Logger] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run `task(attempt)` (attempt is 1-based) up to `attempts` times.

    Errors for which `is_retryable` returns False are re-raised immediately.
    When every attempt fails, raises RetryExhaustedError carrying the last error.
    Cancellation (asyncio.CancelledError) is never retried.
    """
    log = log or logger
    attempts = max(1, attempts)
    last_exc: Optional[BaseException] = None
    for attempt in range(1, attempts + 1):
        try:
            return await task(attempt)
        except Exception as e:
            last_exc = e
            if is_retryable is not None and not is_retryable(e):
                raise
            if attempt == attempts:
                break
            delay = compute_backoff_delay(
                attempt - 1,
                initial_delay=backoff,
                max_delay=max_delay,
                rate_limit_min=60.0 if is_rate_limit_error(e) else None,
                strategy=strategy,
            )
            log.warning(
                "%s: attempt %s/%s failed (%s). Retrying in %.1fs: %s",
                label,
                attempt,
                attempts,
                type(e).__name__,
                delay,
                str(e)[:200],
            )
            await sleep(delay)
    raise RetryExhaustedError(label, attempts, last_exc) from last_exc
