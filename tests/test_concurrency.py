"""Tests for the async primitives."""
import asyncio

import pytest

from toolbridge.common.types import OperationCancelled
from toolbridge.core.concurrency import AsyncOnce, run_cancellable


@pytest.mark.asyncio
async def test_async_once_single_execution():
    calls = 0

    async def factory():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return object()

    once = AsyncOnce(factory)
    values = await asyncio.gather(*(once.get() for _ in range(10)))

    assert calls == 1
    assert all(value is values[0] for value in values)
    assert once.is_set
    assert once.peek() is values[0]


@pytest.mark.asyncio
async def test_async_once_failure_leaves_cell_empty():
    attempts = 0

    async def factory():
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise RuntimeError("first attempt fails")
        return "ready"

    once = AsyncOnce(factory)
    with pytest.raises(RuntimeError):
        await once.get()

    assert not once.is_set
    assert once.peek() is None
    assert await once.get() == "ready"


@pytest.mark.asyncio
async def test_async_once_set_and_clear():
    async def factory():
        return 1

    once = AsyncOnce(factory)
    once.set(2)
    assert await once.get() == 2

    once.clear()
    assert await once.get() == 1


@pytest.mark.asyncio
async def test_run_cancellable_returns_result():
    async def work():
        return 42

    assert await run_cancellable(work(), asyncio.Event()) == 42
    assert await run_cancellable(work()) == 42


@pytest.mark.asyncio
async def test_run_cancellable_cancels_inner_work():
    cancelled = asyncio.Event()
    cancel_event = asyncio.Event()

    async def work():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    asyncio.get_running_loop().call_later(0.01, cancel_event.set)
    with pytest.raises(OperationCancelled):
        await run_cancellable(work(), cancel_event)

    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_run_cancellable_timeout():
    async def work():
        await asyncio.sleep(10)

    with pytest.raises(asyncio.TimeoutError):
        await run_cancellable(work(), asyncio.Event(), timeout=0.01)
    with pytest.raises(asyncio.TimeoutError):
        await run_cancellable(work(), timeout=0.01)


@pytest.mark.asyncio
async def test_run_cancellable_propagates_errors():
    async def work():
        raise ValueError("broken")

    with pytest.raises(ValueError):
        await run_cancellable(work(), asyncio.Event())


@pytest.mark.asyncio
async def test_outer_cancellation_propagates():
    inner_cancelled = asyncio.Event()

    async def work():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            inner_cancelled.set()
            raise

    task = asyncio.create_task(run_cancellable(work(), asyncio.Event()))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0)
    assert inner_cancelled.is_set()
