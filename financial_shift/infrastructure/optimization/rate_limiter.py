"""Token bucket rate limiter with a priority queue"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Set, Tuple, TypeVar

from financial_shift.domain.exceptions import RequestQueueClearedError
from financial_shift.infrastructure.observability.metrics import (
    rate_limiter_queue_gauge,
    rate_limiter_wait_histogram,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Token bucket: up to `max_tokens` calls burst immediately, then calls are
    admitted at `refill_rate` per second.

    Calls that cannot run right away wait in a heap ordered by descending
    priority, FIFO among equal priorities. A single drain task hands out
    tokens as they refill. Nothing is ever dropped or retried here.
    """

    def __init__(self, max_tokens: int = 20, refill_rate: float = 2.0):
        if max_tokens < 1:
            raise ValueError("max_tokens must be at least 1")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")

        self.max_tokens = max_tokens
        self.refill_rate = refill_rate
        self.tokens = float(max_tokens)
        self.last_refill = time.monotonic()

        self._queue: List[Tuple[int, int, float, Callable[[], Awaitable[Any]], asyncio.Future]] = []
        self._sequence = itertools.count()
        self._drain_task: asyncio.Task | None = None
        self._running: Set[asyncio.Task] = set()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.max_tokens, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    async def execute(self, fn: Callable[[], Awaitable[T]], priority: int = 0) -> T:
        """Run `fn` once a token is available; higher priority goes first"""
        self._refill()

        # Fast path only when nobody is waiting, so queued calls keep their turn
        if not self._queue and self.tokens >= 1:
            self.tokens -= 1
            return await fn()

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._queue, (-priority, next(self._sequence), time.monotonic(), fn, future))
        rate_limiter_queue_gauge.set(len(self._queue))
        self._ensure_draining()
        return await future

    def _ensure_draining(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._queue:
            self._refill()
            if self.tokens < 1:
                await asyncio.sleep((1 - self.tokens) / self.refill_rate)
                continue

            _, _, queued_at, fn, future = heapq.heappop(self._queue)
            rate_limiter_queue_gauge.set(len(self._queue))
            if future.done():
                # Caller gave up (cancelled or timed out) while queued
                continue

            self.tokens -= 1
            rate_limiter_wait_histogram.observe(time.monotonic() - queued_at)
            task = asyncio.get_running_loop().create_task(self._run(fn, future))
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    @staticmethod
    async def _run(fn: Callable[[], Awaitable[Any]], future: asyncio.Future) -> None:
        try:
            result = await fn()
        except Exception as e:
            if not future.done():
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(result)

    def status(self) -> Dict[str, Any]:
        self._refill()
        return {
            "available_tokens": int(self.tokens),
            "max_tokens": self.max_tokens,
            "queue_length": len(self._queue),
            "utilization": round((1 - self.tokens / self.max_tokens) * 100, 2),
        }

    def reset(self) -> None:
        """Fail everything still queued and refill the bucket"""
        cleared = 0
        while self._queue:
            _, _, _, _, future = heapq.heappop(self._queue)
            if not future.done():
                future.set_exception(RequestQueueClearedError("Rate limiter queue was reset"))
                cleared += 1

        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
        self._drain_task = None

        self.tokens = float(self.max_tokens)
        self.last_refill = time.monotonic()
        rate_limiter_queue_gauge.set(0)
        if cleared:
            logger.warning("Rate limiter reset", extra={"cleared_requests": cleared})
