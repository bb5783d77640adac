"""Unit tests for request deduplication"""

import asyncio
import re
import pytest
from financial_shift.infrastructure.optimization.deduplicator import RequestDeduplicator


class CountingFetch:
    """Slow fetch that counts how often it really runs"""

    def __init__(self, result="value", error: Exception | None = None, delay: float = 0.01):
        self.calls = 0
        self.result = result
        self.error = error
        self.delay = delay

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


async def test_concurrent_identical_calls_share_one_fetch():
    """Test N concurrent callers trigger exactly one underlying call"""
    dedup = RequestDeduplicator()
    fetch = CountingFetch(result={"id": 1})

    results = await asyncio.gather(*[dedup.execute("GET:Goal/get:[1]", fetch) for _ in range(10)])

    assert fetch.calls == 1
    assert all(r is results[0] for r in results)
    assert dedup.stats()["pending_requests"] == 0
    assert dedup.stats()["hits"] == 9


async def test_shared_failure_reaches_every_caller_and_is_not_cached():
    """Test all waiters see the same exception and the next call retries"""
    dedup = RequestDeduplicator(cache_ttl=60.0)
    fetch = CountingFetch(error=RuntimeError("backend down"))

    results = await asyncio.gather(*[dedup.execute("k", fetch) for _ in range(3)], return_exceptions=True)

    assert fetch.calls == 1
    assert all(isinstance(r, RuntimeError) and r is results[0] for r in results)

    fetch.error = None
    assert await dedup.execute("k", fetch) == "value"
    assert fetch.calls == 2


async def test_without_ttl_settled_requests_run_again():
    """Test the default deduplicator only shares in-flight work"""
    dedup = RequestDeduplicator()
    fetch = CountingFetch()

    await dedup.execute("k", fetch)
    await dedup.execute("k", fetch)
    assert fetch.calls == 2


async def test_ttl_cache_serves_recent_results():
    """Test successful results are reused within the TTL"""
    dedup = RequestDeduplicator(cache_ttl=60.0)
    fetch = CountingFetch()

    await dedup.execute("k", fetch)
    assert await dedup.execute("k", fetch) == "value"
    assert fetch.calls == 1
    assert dedup.stats()["cached_results"] == 1

    await dedup.execute("uncached", fetch, cacheable=False)
    await dedup.execute("uncached", fetch, cacheable=False)
    assert fetch.calls == 3


async def test_invalidate_by_prefix_and_regex():
    """Test invalidation drops matching cache entries only"""
    dedup = RequestDeduplicator(cache_ttl=60.0)
    fetch = CountingFetch()
    for key in ("GET:Goal/list:{}", "GET:Goal/get:[1]", "GET:Budget/list:{}"):
        await dedup.execute(key, fetch)

    assert dedup.invalidate("GET:Goal/") == 2
    assert dedup.invalidate(re.compile(r"^GET:Budget/")) == 1
    assert dedup.stats()["cached_results"] == 0


async def test_invalidated_in_flight_request_is_not_cached():
    """Test a write racing a read does not leave stale data behind"""
    dedup = RequestDeduplicator(cache_ttl=60.0)
    fetch = CountingFetch(result="stale")

    pending = asyncio.create_task(dedup.execute("GET:Goal/list:{}", fetch))
    await asyncio.sleep(0)
    dedup.invalidate("GET:Goal/")

    assert await pending == "stale"
    assert dedup.stats()["cached_results"] == 0

    fetch.result = "fresh"
    assert await dedup.execute("GET:Goal/list:{}", fetch) == "fresh"


async def test_cancelled_waiter_does_not_cancel_shared_request():
    """Test other waiters still get the value when one gives up"""
    dedup = RequestDeduplicator()
    fetch = CountingFetch(delay=0.05)

    impatient = asyncio.create_task(dedup.execute("k", fetch))
    patient = asyncio.create_task(dedup.execute("k", fetch))
    await asyncio.sleep(0)

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(impatient, timeout=0.01)

    assert await patient == "value"
    assert fetch.calls == 1


def test_build_key_is_canonical():
    """Test argument order does not change the key"""
    a = RequestDeduplicator.build_key("Goal/list", "get", {"status": "active", "limit": 5})
    b = RequestDeduplicator.build_key("Goal/list", "GET", {"limit": 5, "status": "active"})

    assert a == b
    assert a == 'GET:Goal/list:{"limit":5,"status":"active"}'
