"""Unit tests for retry with exponential backoff"""

import pytest
from unittest.mock import AsyncMock, patch
from financial_shift.domain.exceptions import EntityAPIError, ErrorClass
from financial_shift.infrastructure.optimization.retry import (
    backoff_delay,
    is_rate_limited,
    is_retryable,
    retry_with_backoff,
)

SLEEP = "financial_shift.infrastructure.optimization.retry.asyncio.sleep"


def failing_then(result, *errors):
    """AsyncMock raising each error once, then returning result"""
    return AsyncMock(side_effect=[*errors, result])


@patch(SLEEP, new_callable=AsyncMock)
async def test_two_rate_limits_then_success(mock_sleep: AsyncMock):
    """Test exactly 2 retries with delays base, 2*base"""
    fn = failing_then("ok", EntityAPIError("slow down", status=429), EntityAPIError("slow down", status=429))

    result = await retry_with_backoff(fn, max_retries=3, base_delay=1.0, should_retry=is_rate_limited)

    assert result == "ok"
    assert fn.await_count == 3
    assert [call.args[0] for call in mock_sleep.await_args_list] == [1.0, 2.0]


@patch(SLEEP, new_callable=AsyncMock)
async def test_terminal_error_is_not_retried(mock_sleep: AsyncMock):
    """Test 4xx fails on the first attempt"""
    fn = failing_then("ok", EntityAPIError("bad request", status=400))

    with pytest.raises(EntityAPIError) as exc_info:
        await retry_with_backoff(fn)

    assert exc_info.value.status == 400
    assert fn.await_count == 1
    mock_sleep.assert_not_awaited()


@patch(SLEEP, new_callable=AsyncMock)
async def test_exhausted_retries_reraise_last_error(mock_sleep: AsyncMock):
    """Test max_retries + 1 attempts, then the last error propagates"""
    errors = [EntityAPIError(f"down {i}", status=503) for i in range(4)]
    fn = AsyncMock(side_effect=errors)

    with pytest.raises(EntityAPIError) as exc_info:
        await retry_with_backoff(fn, max_retries=3, base_delay=0.5)

    assert exc_info.value is errors[-1]
    assert fn.await_count == 4
    assert [call.args[0] for call in mock_sleep.await_args_list] == [0.5, 1.0, 2.0]


@patch(SLEEP, new_callable=AsyncMock)
async def test_retry_after_overrides_backoff(mock_sleep: AsyncMock):
    """Test server-provided Retry-After wins over the computed delay"""
    fn = failing_then("ok", EntityAPIError("slow down", status=429, retry_after=7.0))

    await retry_with_backoff(fn, base_delay=1.0)

    mock_sleep.assert_awaited_once_with(7.0)


@patch(SLEEP, new_callable=AsyncMock)
async def test_retry_after_capped_at_max_delay(mock_sleep: AsyncMock):
    """Test a day-long Retry-After never stalls past max_delay"""
    fn = failing_then("ok", EntityAPIError("slow down", status=429, retry_after=86_400.0))

    assert await retry_with_backoff(fn, max_delay=10.0) == "ok"

    mock_sleep.assert_awaited_once_with(10.0)


@patch(SLEEP, new_callable=AsyncMock)
async def test_non_api_errors_propagate(mock_sleep: AsyncMock):
    """Test unexpected exceptions are never retried by the default policy"""
    fn = AsyncMock(side_effect=KeyError("boom"))

    with pytest.raises(KeyError):
        await retry_with_backoff(fn)
    assert fn.await_count == 1


def test_backoff_delay_capped_and_jittered():
    """Test exponential growth, max_delay cap and bounded jitter"""
    assert [backoff_delay(n, 1.0, 10.0) for n in range(5)] == [1.0, 2.0, 4.0, 8.0, 10.0]

    for _ in range(50):
        delay = backoff_delay(2, 1.0, 10.0, jitter=0.5)
        assert 4.0 <= delay <= 6.0


def test_error_classification():
    """Test transport failures, 429 and 5xx are retryable; other statuses terminal"""
    assert EntityAPIError("timeout").error_class is ErrorClass.RETRYABLE
    assert EntityAPIError("limited", status=429).retryable
    assert EntityAPIError("down", status=502).retryable
    assert EntityAPIError("missing", status=404).error_class is ErrorClass.TERMINAL

    assert is_retryable(EntityAPIError("down", status=500))
    assert not is_retryable(ValueError("nope"))
    assert is_rate_limited(EntityAPIError("limited", status=429))
    assert not is_rate_limited(EntityAPIError("down", status=500))
