"""Pytest fixtures for testing"""

import itertools
import pytest
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi.testclient import TestClient

from financial_shift.api.dependencies import get_optimizer
from financial_shift.api.main import create_app
from financial_shift.domain.models import DebtAccount, ShiftRule
from financial_shift.infrastructure.optimization.batcher import RequestBatcher
from financial_shift.infrastructure.optimization.deduplicator import RequestDeduplicator
from financial_shift.infrastructure.optimization.entities import RequestOptimizer
from financial_shift.infrastructure.optimization.rate_limiter import RateLimiter


class FakeEntityClient:
    """
    In-memory entity backend.

    `failures[method]` is a list of exceptions raised, in order, by the next
    calls of that method before it starts succeeding.
    """

    def __init__(self):
        self.records: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.calls: List[tuple] = []
        self.failures: Dict[str, List[Exception]] = defaultdict(list)
        self._ids = itertools.count(1)

    def _record_call(self, method: str, *args: Any) -> None:
        self.calls.append((method, *args))
        if self.failures[method]:
            raise self.failures[method].pop(0)

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    async def list(self, entity: str, filters: Optional[dict] = None, sort: str | None = None, limit: int | None = None):
        self._record_call("list", entity, filters)
        rows = [
            r for r in self.records[entity].values()
            if all(str(r.get(k)) == str(v) for k, v in (filters or {}).items())
        ]
        return rows[:limit] if limit is not None else rows

    async def get(self, entity: str, entity_id: str):
        self._record_call("get", entity, entity_id)
        return self.records[entity].get(entity_id)

    async def create(self, entity: str, data: dict):
        self._record_call("create", entity, data)
        record = {**data, "id": str(next(self._ids))}
        self.records[entity][record["id"]] = record
        return record

    async def update(self, entity: str, entity_id: str, data: dict):
        self._record_call("update", entity, entity_id, data)
        record = {**self.records[entity].get(entity_id, {}), **data, "id": entity_id}
        self.records[entity][entity_id] = record
        return record

    async def delete(self, entity: str, entity_id: str):
        self._record_call("delete", entity, entity_id)
        return self.records[entity].pop(entity_id, None)

    async def query(self, entity: str, query: dict):
        self._record_call("query", entity, query)
        return [r for r in self.records[entity].values() if all(r.get(k) == v for k, v in query.items())]


@pytest.fixture
def entity_client() -> FakeEntityClient:
    return FakeEntityClient()


@pytest.fixture
def optimizer(entity_client: FakeEntityClient) -> RequestOptimizer:
    """Optimizer with a generous bucket and zero backoff so tests never wait"""
    return RequestOptimizer(
        entity_client,
        rate_limiter=RateLimiter(max_tokens=100, refill_rate=100.0),
        deduplicator=RequestDeduplicator(cache_ttl=60.0),
        batcher=RequestBatcher(batch_size=3, batch_delay=0.01),
        read_backoff_base=0.0,
        mutation_backoff_base=0.0,
        batch_chunk_size=2,
    )


@pytest.fixture
def client(optimizer: RequestOptimizer) -> TestClient:
    """Create FastAPI test client backed by the in-memory entity client"""
    app = create_app()
    app.dependency_overrides[get_optimizer] = lambda: optimizer
    return TestClient(app)


@pytest.fixture
def three_debts() -> list[DebtAccount]:
    """A: 24% APR, B: 12% APR, C: 6% APR"""
    return [
        DebtAccount(name="A", balance=1000.0, apr=24.0, minimum_payment=50.0),
        DebtAccount(name="B", balance=500.0, apr=12.0, minimum_payment=25.0),
        DebtAccount(name="C", balance=2000.0, apr=6.0, minimum_payment=60.0),
    ]


@pytest.fixture
def hourly_rule() -> ShiftRule:
    """$20/hr, 40h weekly overtime at 1.5x"""
    return ShiftRule(base_hourly_rate=20.0)


@pytest.fixture
def monday() -> datetime:
    """2024-01-01 is a Monday"""
    return datetime(2024, 1, 1)
