"""Entity access routed through rate limiting, deduplication, retries and batching"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence

from financial_shift.config import Settings, settings as default_settings
from financial_shift.domain.exceptions import UnknownEntityError
from financial_shift.infrastructure.optimization.batcher import RequestBatcher
from financial_shift.infrastructure.optimization.deduplicator import RequestDeduplicator
from financial_shift.infrastructure.optimization.rate_limiter import RateLimiter
from financial_shift.infrastructure.optimization.retry import (
    is_rate_limited,
    is_retryable,
    retry_with_backoff,
)

Record = Dict[str, Any]

ENTITY_NAMES = (
    # Financial
    "Transaction",
    "Budget",
    "Goal",
    "BNPLPlan",
    "Bill",
    "DebtAccount",
    "Investment",
    # Shift work
    "PaycheckSettings",
    "ShiftRule",
    "Shift",
    "ForecastSnapshot",
    # Engagement and automation
    "Gamification",
    "AgentTask",
    "Notification",
    "AutomationRule",
    # Tax and location
    "FederalTaxConfig",
    "StateTaxConfig",
    "ZipJurisdiction",
    "CostOfLiving",
    # Subscription
    "Plan",
    "Subscription",
)

GET_PRIORITY = 10
LIST_PRIORITY = 5
MUTATION_PRIORITY = 15


class EntityClient(Protocol):
    """CRUD collaborator wrapped by the optimizer"""

    async def list(self, entity: str, filters: Optional[Record] = None, sort: str | None = None, limit: int | None = None) -> List[Record]: ...

    async def get(self, entity: str, entity_id: str) -> Optional[Record]: ...

    async def create(self, entity: str, data: Record) -> Record: ...

    async def update(self, entity: str, entity_id: str, data: Record) -> Record: ...

    async def delete(self, entity: str, entity_id: str) -> Any: ...

    async def query(self, entity: str, query: Record) -> List[Record]: ...


class OptimizedEntity:
    """One entity of the catalog with optimized CRUD methods"""

    def __init__(self, name: str, optimizer: "RequestOptimizer"):
        self.name = name
        self._optimizer = optimizer
        self._client = optimizer.client

    # Reads: dedup -> rate limit -> retry on 429/5xx

    async def _read(self, method: str, args: Any, priority: int, call: Callable[[], Awaitable[Any]]) -> Any:
        opt = self._optimizer
        key = RequestDeduplicator.build_key(f"{self.name}/{method}", "GET", args)
        return await opt.deduplicator.execute(
            key,
            lambda: opt.rate_limiter.execute(
                lambda: retry_with_backoff(
                    call,
                    max_retries=opt.read_max_retries,
                    base_delay=opt.read_backoff_base,
                    max_delay=opt.retry_max_delay,
                    jitter=opt.retry_jitter,
                    should_retry=is_retryable,
                ),
                priority=priority,
            ),
        )

    async def list(self, filters: Optional[Record] = None, sort: str | None = None, limit: int | None = None) -> List[Record]:
        return await self._read(
            "list",
            {"filters": filters, "sort": sort, "limit": limit},
            LIST_PRIORITY,
            lambda: self._client.list(self.name, filters=filters, sort=sort, limit=limit),
        )

    async def get(self, entity_id: str) -> Optional[Record]:
        return await self._read("get", [entity_id], GET_PRIORITY, lambda: self._client.get(self.name, entity_id))

    async def query(self, query: Record) -> List[Record]:
        return await self._read("query", query, LIST_PRIORITY, lambda: self._client.query(self.name, query))

    # Mutations: rate limit -> retry on 429 only, then drop cached reads

    async def _mutate(self, call: Callable[[], Awaitable[Any]], invalidate: bool = True) -> Any:
        opt = self._optimizer
        result = await opt.rate_limiter.execute(
            lambda: retry_with_backoff(
                call,
                max_retries=opt.mutation_max_retries,
                base_delay=opt.mutation_backoff_base,
                max_delay=opt.retry_max_delay,
                jitter=opt.retry_jitter,
                should_retry=is_rate_limited,
            ),
            priority=MUTATION_PRIORITY,
        )
        if invalidate:
            opt.invalidate_cache(self.name)
        return result

    async def create(self, data: Record) -> Record:
        return await self._mutate(lambda: self._client.create(self.name, data))

    async def update(self, entity_id: str, data: Record) -> Record:
        return await self._mutate(lambda: self._client.update(self.name, entity_id, data))

    async def delete(self, entity_id: str) -> Any:
        return await self._mutate(lambda: self._client.delete(self.name, entity_id))

    # Batches

    async def _process_chunks(self, items: List[Any], call: Callable[[Any], Awaitable[Any]]) -> List[Any]:
        """
        Run items in concurrent chunks; a failing item fails the batch.

        Cached reads are dropped whether or not every chunk succeeds.
        """
        chunk_size = self._optimizer.batch_chunk_size
        results: List[Any] = []
        try:
            for start in range(0, len(items), chunk_size):
                chunk = items[start:start + chunk_size]
                results.extend(await asyncio.gather(*[self._mutate(lambda item=item: call(item), invalidate=False) for item in chunk]))
        finally:
            self._optimizer.invalidate_cache(self.name)
        return results

    async def batch_create(self, items: Sequence[Record]) -> List[Record]:
        async def processor(batch: List[Record]) -> List[Record]:
            return await self._process_chunks(batch, lambda data: self._client.create(self.name, data))

        return await self._add_all(f"{self.name}/create", items, processor)

    async def batch_update(self, updates: Sequence[Record]) -> List[Record]:
        """`updates` are {"id": ..., "data": {...}} items"""
        async def processor(batch: List[Record]) -> List[Record]:
            return await self._process_chunks(
                batch, lambda update: self._client.update(self.name, update["id"], update["data"])
            )

        return await self._add_all(f"{self.name}/update", updates, processor)

    async def batch_delete(self, ids: Sequence[str]) -> List[Any]:
        async def processor(batch: List[str]) -> List[Any]:
            return await self._process_chunks(batch, lambda entity_id: self._client.delete(self.name, entity_id))

        return await self._add_all(f"{self.name}/delete", ids, processor)

    async def _add_all(self, batch_key: str, items: Sequence[Any], processor: Callable) -> List[Any]:
        batcher = self._optimizer.batcher
        return list(await asyncio.gather(*[batcher.add(batch_key, item, processor) for item in items]))


class RequestOptimizer:
    """
    Owns one rate limiter, deduplicator and batcher shared by every entity
    of the catalog.
    """

    def __init__(
        self,
        client: EntityClient,
        rate_limiter: RateLimiter | None = None,
        deduplicator: RequestDeduplicator | None = None,
        batcher: RequestBatcher | None = None,
        read_max_retries: int = 3,
        read_backoff_base: float = 1.0,
        mutation_max_retries: int = 2,
        mutation_backoff_base: float = 2.0,
        retry_max_delay: float = 10.0,
        retry_jitter: float = 0.0,
        batch_chunk_size: int = 5,
    ):
        self.client = client
        self.rate_limiter = rate_limiter or RateLimiter()
        self.deduplicator = deduplicator or RequestDeduplicator()
        self.batcher = batcher or RequestBatcher()
        self.read_max_retries = read_max_retries
        self.read_backoff_base = read_backoff_base
        self.mutation_max_retries = mutation_max_retries
        self.mutation_backoff_base = mutation_backoff_base
        self.retry_max_delay = retry_max_delay
        self.retry_jitter = retry_jitter
        self.batch_chunk_size = batch_chunk_size
        self._entities: Dict[str, OptimizedEntity] = {}

    @classmethod
    def from_settings(cls, client: EntityClient, config: Settings | None = None) -> "RequestOptimizer":
        config = config or default_settings
        return cls(
            client,
            rate_limiter=RateLimiter(config.rate_limit_max_tokens, config.rate_limit_refill_rate),
            deduplicator=RequestDeduplicator(cache_ttl=config.dedup_cache_ttl_seconds),
            batcher=RequestBatcher(config.batch_size, config.batch_delay_seconds),
            read_max_retries=config.read_max_retries,
            read_backoff_base=config.read_backoff_base,
            mutation_max_retries=config.mutation_max_retries,
            mutation_backoff_base=config.mutation_backoff_base,
            retry_max_delay=config.retry_max_delay,
            retry_jitter=config.retry_jitter,
            batch_chunk_size=config.batch_chunk_size,
        )

    def entity(self, name: str) -> OptimizedEntity:
        if name not in ENTITY_NAMES:
            raise UnknownEntityError(f"Unknown entity '{name}'")
        if name not in self._entities:
            self._entities[name] = OptimizedEntity(name, self)
        return self._entities[name]

    def invalidate_cache(self, entity_name: str) -> int:
        """Drop in-flight and cached reads of one entity"""
        return self.deduplicator.invalidate(re.compile(rf"^GET:{re.escape(entity_name)}/"))

    async def flush_batches(self) -> None:
        await self.batcher.flush()

    def stats(self) -> Dict[str, Any]:
        return {
            "rate_limiter": self.rate_limiter.status(),
            "deduplicator": self.deduplicator.stats(),
            "pending_batches": self.batcher.pending(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
