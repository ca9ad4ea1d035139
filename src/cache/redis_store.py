# src/cache/redis_store.py - v2
"""Redis-based ephemeral cache (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for multi-instance deployments sharing one cache. Values are
written with SETEX so expiry is enforced by Redis itself.
"""

from __future__ import annotations

import logging

from contentguard.cache.base_cache_store import BaseCacheStore
from contentguard.core.errors import CacheUnavailable

logger = logging.getLogger(__name__)


class RedisCacheStore(BaseCacheStore):
    """Redis-backed TTL cache using the asyncio client."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis.asyncio as redis_asyncio
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis_asyncio.Redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> str | None:
        from redis.exceptions import RedisError

        try:
            return await self._client.get(key)
        except RedisError as e:
            raise CacheUnavailable(f"Redis GET failed for {key}: {e}") from e

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        from redis.exceptions import RedisError

        try:
            await self._client.setex(key, ttl_seconds, value)
        except RedisError as e:
            raise CacheUnavailable(f"Redis SETEX failed for {key}: {e}") from e

    async def ttl(self, key: str) -> int | None:
        from redis.exceptions import RedisError

        try:
            remaining = await self._client.ttl(key)
        except RedisError as e:
            raise CacheUnavailable(f"Redis TTL failed for {key}: {e}") from e
        # -2: no such key, -1: key without expiry
        if remaining == -2:
            return None
        return remaining

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._client.aclose()
