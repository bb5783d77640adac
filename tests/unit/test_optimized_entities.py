"""Unit tests for optimized entity access"""

import asyncio
import pytest
from financial_shift.config import Settings
from financial_shift.domain.exceptions import EntityAPIError, UnknownEntityError
from financial_shift.infrastructure.optimization.entities import ENTITY_NAMES, RequestOptimizer


async def test_concurrent_reads_hit_backend_once(optimizer, entity_client):
    """Test identical concurrent gets are deduplicated"""
    entity_client.records["Goal"]["1"] = {"id": "1", "name": "vacation"}
    goals = optimizer.entity("Goal")

    results = await asyncio.gather(*[goals.get("1") for _ in range(5)])

    assert all(r == {"id": "1", "name": "vacation"} for r in results)
    assert entity_client.count("get") == 1


async def test_mutation_invalidates_cached_reads(optimizer, entity_client):
    """Test a create makes the next list go back to the backend"""
    budgets = optimizer.entity("Budget")

    assert await budgets.list() == []
    assert await budgets.list() == []
    assert entity_client.count("list") == 1

    created = await budgets.create({"category": "groceries", "monthly_limit": 500})

    assert await budgets.list() == [created]
    assert entity_client.count("list") == 2


async def test_invalidation_is_scoped_to_one_entity(optimizer, entity_client):
    """Test writing Goal keeps Budget reads cached"""
    await optimizer.entity("Budget").list()
    await optimizer.entity("Goal").create({"name": "car"})
    await optimizer.entity("Budget").list()

    assert entity_client.count("list") == 1


async def test_reads_retry_server_errors(optimizer, entity_client):
    """Test 5xx and 429 on reads are retried"""
    entity_client.failures["query"] = [EntityAPIError("down", status=503), EntityAPIError("limited", status=429)]

    assert await optimizer.entity("Transaction").query({"type": "expense"}) == []
    assert entity_client.count("query") == 3


async def test_reads_give_up_after_three_retries(optimizer, entity_client):
    """Test persistent 5xx surfaces after max retries"""
    entity_client.failures["list"] = [EntityAPIError("down", status=500) for _ in range(10)]

    with pytest.raises(EntityAPIError):
        await optimizer.entity("Shift").list()
    assert entity_client.count("list") == 4


async def test_mutations_only_retry_rate_limits(optimizer, entity_client):
    """Test a 500 on create is not replayed but a 429 is"""
    entity_client.failures["create"] = [EntityAPIError("down", status=500)]
    with pytest.raises(EntityAPIError):
        await optimizer.entity("Goal").create({"name": "car"})
    assert entity_client.count("create") == 1

    entity_client.failures["create"] = [EntityAPIError("limited", status=429)]
    created = await optimizer.entity("Goal").create({"name": "car"})
    assert created["name"] == "car"
    assert entity_client.count("create") == 3


async def test_terminal_read_error_not_retried(optimizer, entity_client):
    """Test 403 surfaces immediately"""
    entity_client.failures["get"] = [EntityAPIError("forbidden", status=403)]

    with pytest.raises(EntityAPIError) as exc_info:
        await optimizer.entity("Goal").get("1")
    assert exc_info.value.status == 403
    assert entity_client.count("get") == 1


async def test_batch_create_keeps_item_order(optimizer, entity_client):
    """Test batched creates return results aligned with inputs"""
    items = [{"name": f"shift-{i}"} for i in range(5)]

    created = await optimizer.entity("Shift").batch_create(items)

    assert [c["name"] for c in created] == [i["name"] for i in items]
    assert entity_client.count("create") == 5


async def test_batch_update_and_delete(optimizer, entity_client):
    """Test batched updates and deletes reach the backend"""
    shifts = optimizer.entity("Shift")
    created = await shifts.batch_create([{"name": "a"}, {"name": "b"}])
    await optimizer.flush_batches()

    updated = await shifts.batch_update([{"id": c["id"], "data": {"name": c["name"].upper()}} for c in created])
    assert [u["name"] for u in updated] == ["A", "B"]

    await shifts.batch_delete([c["id"] for c in created])
    assert entity_client.records["Shift"] == {}


async def test_batch_writes_invalidate_reads(optimizer, entity_client):
    """Test a batch create makes cached lists stale"""
    shifts = optimizer.entity("Shift")
    await shifts.list()
    await shifts.batch_create([{"name": "a"}])
    assert len(await shifts.list()) == 1


async def test_partially_failed_batch_still_invalidates_reads(optimizer, entity_client):
    """Test writes from chunks that succeeded are visible after a later chunk fails"""
    shifts = optimizer.entity("Shift")
    assert await shifts.list() == []

    create = entity_client.create

    async def reject_bad(entity, data):
        if data["name"] == "bad":
            raise EntityAPIError("invalid shift", status=400)
        return await create(entity, data)

    entity_client.create = reject_bad

    with pytest.raises(EntityAPIError):
        await shifts.batch_create([{"name": "ok0"}, {"name": "ok1"}, {"name": "bad"}])

    assert len(entity_client.records["Shift"]) == 2
    assert len(await shifts.list()) == 2


def test_unknown_entity_rejected(optimizer):
    """Test only catalog entities are exposed"""
    with pytest.raises(UnknownEntityError):
        optimizer.entity("Spaceship")
    assert optimizer.entity("Goal") is optimizer.entity("Goal")


def test_catalog_covers_calculation_inputs():
    for name in ("Transaction", "Budget", "Goal", "DebtAccount", "Shift", "ShiftRule", "FederalTaxConfig"):
        assert name in ENTITY_NAMES


def test_from_settings_wires_components(entity_client):
    """Test settings drive limiter, cache and batch configuration"""
    config = Settings(rate_limit_max_tokens=7, dedup_cache_ttl_seconds=1.5, batch_size=4, batch_chunk_size=2)
    optimizer = RequestOptimizer.from_settings(entity_client, config)

    assert optimizer.rate_limiter.max_tokens == 7
    assert optimizer.deduplicator.cache_ttl == 1.5
    assert optimizer.batcher.batch_size == 4
    assert optimizer.batch_chunk_size == 2


async def test_stats_shape(optimizer):
    stats = optimizer.stats()

    assert set(stats) == {"rate_limiter", "deduplicator", "pending_batches", "timestamp"}
    assert stats["rate_limiter"]["max_tokens"] == 100
