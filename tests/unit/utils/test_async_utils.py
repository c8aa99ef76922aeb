import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from pydantic import ValidationError

from utils.async_utils import RetryPolicy, async_retry, gather_or_cancel, gather_with_concurrency


@pytest.mark.asyncio
async def test_async_retry_backs_off_exponentially():
    func = AsyncMock(side_effect=[ConnectionError("1"), ConnectionError("2"), "ok"])
    wrapped = async_retry(max_retries=3, initial_delay=0.5, backoff_factor=2, exceptions=(ConnectionError,))(func)

    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        assert await wrapped("arg") == "ok"

    assert func.await_count == 3
    assert [c.args[0] for c in mock_sleep.await_args_list] == [0.5, 1.0]
    func.assert_awaited_with("arg")


@pytest.mark.asyncio
async def test_async_retry_reraises_after_exhaustion():
    func = AsyncMock(side_effect=ConnectionError("down"))
    wrapped = RetryPolicy(max_retries=2, initial_delay=0).wrap(func, exceptions=(ConnectionError,))

    with pytest.raises(ConnectionError, match="down"):
        await wrapped()
    assert func.await_count == 3


@pytest.mark.asyncio
async def test_other_exceptions_are_not_retried():
    func = AsyncMock(side_effect=KeyError("boom"))
    wrapped = RetryPolicy(max_retries=5, initial_delay=0).wrap(func, exceptions=(ConnectionError,))

    with pytest.raises(KeyError):
        await wrapped()
    assert func.await_count == 1


def test_retry_policy_validation():
    with pytest.raises(ValidationError):
        RetryPolicy(max_retries=-1)
    with pytest.raises(ValidationError):
        RetryPolicy(backoff_factor=0.5)


@pytest.mark.asyncio
async def test_gather_with_concurrency_keeps_order_and_bound():
    running = 0
    peak = 0

    async def work(value, delay):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(delay)
        running -= 1
        return value

    results = await gather_with_concurrency(2, work("a", 0.03), work("b", 0.01), work("c", 0), work("d", 0.01))

    assert results == ["a", "b", "c", "d"]
    assert peak == 2


def pending_tasks():
    return [task for task in asyncio.all_tasks() if task is not asyncio.current_task() and not task.done()]


@pytest.mark.asyncio
async def test_gather_with_concurrency_cancels_the_rest_on_failure():
    cancelled = []

    async def slow(name):
        try:
            await asyncio.sleep(1)
        except asyncio.CancelledError:
            cancelled.append(name)
            raise
        return name

    async def fail():
        await asyncio.sleep(0)
        raise KeyError("boom")

    with pytest.raises(KeyError):
        await gather_with_concurrency(2, slow("a"), fail(), slow("c"))

    # "c" was still waiting for a slot and never started
    assert cancelled == ["a"]
    assert pending_tasks() == []


@pytest.mark.asyncio
async def test_gather_or_cancel_returns_results_in_order():
    async def value(v, delay):
        await asyncio.sleep(delay)
        return v

    assert await gather_or_cancel(value(1, 0.02), value(2, 0)) == [1, 2]
