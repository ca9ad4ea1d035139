# src/cache/base_cache_store.py - v2
"""Abstract ephemeral cache interface (TTL-bound key/value)."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseCacheStore(ABC):
    """Fast TTL-bound tier. May lose data without correctness loss.

    Implementations raise ``CacheUnavailable`` when the backend is down.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the serialized value, or None on miss/expiry."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a serialized value with a TTL (last write wins)."""

    @abstractmethod
    async def ttl(self, key: str) -> int | None:
        """Remaining TTL in seconds, or None if the key is absent."""

    async def close(self) -> None:
        """Release connections. Default: nothing to release."""
