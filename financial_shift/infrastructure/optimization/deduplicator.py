"""In-flight request deduplication with an optional short result cache"""

import asyncio
import json
import re
import time
from typing import Any, Awaitable, Callable, Dict, Pattern, Tuple, TypeVar, Union

from financial_shift.infrastructure.observability.metrics import dedup_hit_counter

T = TypeVar("T")


class RequestDeduplicator:
    """
    Collapses concurrent identical requests into one underlying call.

    Every caller with the same key awaits the same task, so all of them see
    the same value or the same exception. The key leaves the pending map as
    soon as the task settles. With `cache_ttl > 0` successful results are
    also served from memory for that many seconds; failures never are.
    """

    def __init__(self, cache_ttl: float = 0.0):
        self.cache_ttl = cache_ttl
        self._pending: Dict[str, asyncio.Task] = {}
        self._cache: Dict[str, Tuple[float, Any]] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def build_key(endpoint: str, method: str = "GET", args: Any = None) -> str:
        """'{METHOD}:{endpoint}:{canonical json args}', stable under dict ordering"""
        canonical = json.dumps(args, sort_keys=True, default=str, separators=(",", ":"))
        return f"{method.upper()}:{endpoint}:{canonical}"

    async def execute(self, key: str, fn: Callable[[], Awaitable[T]], cacheable: bool = True) -> T:
        cached = self._cache.get(key)
        if cached is not None:
            expires_at, value = cached
            if time.monotonic() < expires_at:
                self.hits += 1
                dedup_hit_counter.labels(source="cache").inc()
                return value
            del self._cache[key]

        task = self._pending.get(key)
        if task is not None:
            self.hits += 1
            dedup_hit_counter.labels(source="pending").inc()
        else:
            self.misses += 1
            task = asyncio.ensure_future(fn())
            self._pending[key] = task
            task.add_done_callback(lambda t: self._settle(key, t, cacheable))

        # Shield so one cancelled waiter does not cancel the shared request
        return await asyncio.shield(task)

    def _settle(self, key: str, task: asyncio.Task, cacheable: bool) -> None:
        failed = task.cancelled() or task.exception() is not None
        if self._pending.get(key) is not task:
            # Invalidated while in flight
            return
        del self._pending[key]

        if failed:
            return
        if cacheable and self.cache_ttl > 0:
            self._cache[key] = (time.monotonic() + self.cache_ttl, task.result())

    def invalidate(self, pattern: Union[str, Pattern[str]]) -> int:
        """
        Drop pending and cached entries whose key starts with `pattern`
        (or matches it, for a compiled regex). Returns the number dropped.
        """
        if isinstance(pattern, re.Pattern):
            matches = lambda key: pattern.search(key) is not None  # noqa: E731
        else:
            matches = lambda key: key.startswith(pattern)  # noqa: E731

        dropped = 0
        for store in (self._pending, self._cache):
            for key in [k for k in store if matches(k)]:
                del store[key]
                dropped += 1
        return dropped

    def clear(self) -> None:
        self._pending.clear()
        self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "pending_requests": len(self._pending),
            "cached_results": len(self._cache),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 2) if total else 0.0,
        }
