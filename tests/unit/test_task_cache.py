"""Unit tests for the (scope, window) task cache."""

import asyncio

import pytest

from src.modules.calendar.cache import CacheKey, TaskCache
from tests.conftest import make_task


KEY = CacheKey(scope="user-1", window="2025-03-01..2025-03-31")


@pytest.mark.unit
class TestTaskCache:
    async def test_load_stores_result(self):
        cache = TaskCache()
        task = make_task()

        async def fetch():
            return [task]

        assert await cache.load(KEY, fetch) == (task,)
        assert cache.get(KEY) == (task,)
        assert not cache.is_loading(KEY)

    async def test_concurrent_loads_share_one_fetch(self):
        cache = TaskCache()
        calls = 0
        gate = asyncio.Event()

        async def fetch():
            nonlocal calls
            calls += 1
            await gate.wait()
            return [make_task()]

        first = asyncio.create_task(cache.load(KEY, fetch))
        second = asyncio.create_task(cache.load(KEY, fetch))
        await asyncio.sleep(0)
        gate.set()

        assert await first == await second
        assert calls == 1

    async def test_cancelled_read_never_overwrites(self):
        cache = TaskCache()
        stale, fresh = make_task(task_name="stale"), make_task(task_name="fresh")
        gate = asyncio.Event()

        async def fetch():
            await gate.wait()
            return [stale]

        loader = asyncio.create_task(cache.load(KEY, fetch))
        await asyncio.sleep(0)
        assert cache.is_loading(KEY)

        assert cache.cancel(KEY) is True
        cache.set(KEY, [fresh])
        gate.set()

        assert await loader == (fresh,)
        assert cache.get(KEY) == (fresh,)
        assert cache.cancel(KEY) is False

    async def test_fetch_errors_propagate(self):
        cache = TaskCache()

        async def fetch():
            raise ConnectionError("offline")

        with pytest.raises(ConnectionError):
            await cache.load(KEY, fetch)
        assert cache.get(KEY) is None

    def test_invalidate_scope_keeps_current_window(self):
        cache = TaskCache()
        april = CacheKey(scope="user-1", window="2025-04-01..2025-04-30")
        other_user = CacheKey(scope="user-2", window=KEY.window)
        for key in (KEY, april, other_user):
            cache.set(key, [make_task()])

        cache.invalidate_scope("user-1", keep=KEY)

        assert set(cache.keys()) == {KEY, other_user}

    def test_clear(self):
        cache = TaskCache()
        cache.set(KEY, [])
        cache.clear()
        assert cache.get(KEY) is None
