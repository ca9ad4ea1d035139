# src/cache/cache_factory.py - v3
"""Factory for cache tier instantiation from Settings."""

from __future__ import annotations

from contentguard.cache.base_cache_store import BaseCacheStore
from contentguard.cache.base_record_store import BaseRecordStore
from contentguard.cache.coordinator import CacheCoordinator
from contentguard.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured ephemeral backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from contentguard.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore()

    if backend == "redis":
        from contentguard.cache.redis_store import RedisCacheStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")


def create_record_store(settings: Settings | None = None) -> BaseRecordStore:
    """Instantiate the configured durable backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.
    """
    backend = "memory" if settings is None else settings.store_backend

    if backend == "memory":
        from contentguard.cache.memory_record_store import MemoryRecordStore
        return MemoryRecordStore()

    if backend == "sqlite":
        from contentguard.cache.sqlite_store import SqliteRecordStore
        return SqliteRecordStore(db_path=settings.store_path)  # type: ignore[union-attr]

    raise ValueError(f"Unsupported store backend: {backend!r}")


def create_coordinator(settings: Settings | None = None) -> CacheCoordinator:
    """Wire both tiers into a CacheCoordinator."""
    ttl = 3600 if settings is None else settings.cache_ttl_seconds
    prefix = "moderation" if settings is None else settings.cache_key_prefix
    return CacheCoordinator(
        cache_store=create_cache_store(settings),
        record_store=create_record_store(settings),
        ttl_seconds=ttl,
        key_prefix=prefix,
    )
