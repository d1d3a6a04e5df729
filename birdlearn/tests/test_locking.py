"""
Tests for the keyed asyncio lock.
"""

import asyncio

import pytest

from birdlearn.common.locking import KeyedLock


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    locks = KeyedLock()
    events = []

    async def worker(name):
        async with locks.acquire("key"):
            events.append(f"{name}-start")
            await asyncio.sleep(0.01)
            events.append(f"{name}-end")

    await asyncio.gather(worker("a"), worker("b"))
    assert events == ["a-start", "a-end", "b-start", "b-end"]


@pytest.mark.asyncio
async def test_different_keys_do_not_block():
    locks = KeyedLock()
    released = asyncio.Event()

    async def holder():
        async with locks.acquire("one"):
            await released.wait()

    task = asyncio.create_task(holder())
    await asyncio.sleep(0)
    assert locks.is_locked("one")

    async with locks.acquire("two"):
        assert locks.is_locked("two")

    released.set()
    await task


@pytest.mark.asyncio
async def test_entries_released():
    locks = KeyedLock()
    async with locks.acquire(("learner", 1)):
        assert len(locks) == 1
    assert len(locks) == 0
    assert not locks.is_locked(("learner", 1))


@pytest.mark.asyncio
async def test_released_on_error():
    locks = KeyedLock()
    with pytest.raises(ValueError):
        async with locks.acquire("key"):
            raise ValueError("fail")
    assert len(locks) == 0
