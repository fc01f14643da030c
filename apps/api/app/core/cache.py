from __future__ import annotations

import json
import time
from collections.abc import Callable

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError


class MemoryTTLCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, tuple[float, str]] = {}
        self._clock = clock

    async def get(self, key: str) -> dict | list | str | None:
        entry = self._store.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._store.pop(key, None)
            return None
        return json.loads(value)

    async def set(self, key: str, value: dict | list | str, ttl_seconds: int) -> None:
        self._store[key] = (self._clock() + ttl_seconds, json.dumps(value))


class CacheClient:
    """TTL cache for provider payloads, optionally backed by a shared Redis."""

    def __init__(
        self,
        default_ttl_seconds: int = 900,
        redis_url: str | None = None,
        memory: MemoryTTLCache | None = None,
    ) -> None:
        self.default_ttl_seconds = default_ttl_seconds
        self._redis_url = redis_url
        self._memory = memory or MemoryTTLCache()
        self._redis: Redis | None = None

    async def connect(self) -> None:
        if not self._redis_url:
            return
        try:
            client = Redis.from_url(self._redis_url, decode_responses=True)
            await client.ping()
            self._redis = client
        except (RedisError, OSError) as exc:
            logger.warning(f"Redis unavailable, using in-memory price cache: {exc}")
            self._redis = None

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str):
        if self._redis:
            try:
                value = await self._redis.get(key)
                return json.loads(value) if value else None
            except RedisError as exc:
                logger.warning(f"Redis read failed for {key}: {exc}")
        return await self._memory.get(key)

    async def set(self, key: str, value: dict | list | str, ttl_seconds: int | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        if self._redis:
            try:
                await self._redis.set(name=key, value=json.dumps(value), ex=ttl)
                return
            except RedisError as exc:
                logger.warning(f"Redis write failed for {key}: {exc}")
        await self._memory.set(key, value, ttl)
