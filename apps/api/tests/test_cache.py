from __future__ import annotations

import pytest

from app.core.cache import CacheClient, MemoryTTLCache


class Ticker:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


@pytest.mark.asyncio
async def test_entries_expire_after_ttl() -> None:
    ticker = Ticker()
    cache = CacheClient(default_ttl_seconds=900, memory=MemoryTTLCache(clock=ticker))

    await cache.set("prices:BE", [{"price": 1.5}])
    ticker.value += 899
    assert await cache.get("prices:BE") == [{"price": 1.5}]

    ticker.value += 1
    assert await cache.get("prices:BE") is None


@pytest.mark.asyncio
async def test_zero_ttl_disables_caching() -> None:
    cache = CacheClient(default_ttl_seconds=0)

    await cache.set("k", "v")

    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_connect_without_redis_url_stays_in_memory() -> None:
    cache = CacheClient(redis_url=None)

    await cache.connect()
    await cache.set("k", "v")

    assert await cache.get("k") == "v"
    await cache.close()


@pytest.mark.asyncio
async def test_explicit_zero_ttl_is_not_replaced_by_default() -> None:
    cache = CacheClient(default_ttl_seconds=900)

    await cache.set("k", "v", ttl_seconds=0)

    assert await cache.get("k") is None
