"""Retry with exponential backoff for entity API calls"""

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

from financial_shift.domain.exceptions import EntityAPIError
from financial_shift.infrastructure.observability.logging import log_retry
from financial_shift.infrastructure.observability.metrics import retry_counter

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """Default read policy: transport failures, 429 and 5xx"""
    return isinstance(exc, EntityAPIError) and exc.retryable


def is_rate_limited(exc: BaseException) -> bool:
    """Mutation policy: only 429 is safe to replay"""
    return isinstance(exc, EntityAPIError) and exc.status == 429


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: float = 0.0) -> float:
    """min(base * 2^attempt, max) plus up to `jitter` of that delay at random"""
    delay = min(base_delay * (2 ** attempt), max_delay)
    if jitter > 0:
        delay += random.uniform(0, jitter * delay)
    return delay


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    jitter: float = 0.0,
    should_retry: Callable[[BaseException], bool] = is_retryable,
) -> T:
    """
    Call `fn` until it succeeds, a non-retryable error occurs, or
    `max_retries` retries are spent.

    A `retry_after` carried by EntityAPIError replaces the computed delay,
    still capped at `max_delay`.
    The last error is re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            if attempt >= max_retries or not should_retry(e):
                raise

            retry_after = getattr(e, "retry_after", None)
            if retry_after is not None:
                delay = min(max(0.0, float(retry_after)), max_delay)
            else:
                delay = backoff_delay(attempt, base_delay, max_delay, jitter)

            attempt += 1
            retry_counter.inc()
            log_retry(attempt, max_retries, delay, e)
            await asyncio.sleep(delay)
