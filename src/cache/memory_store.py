# src/cache/memory_store.py - v2
"""In-process ephemeral cache (CACHE_BACKEND=memory).

Single-instance deployments and tests. Entries expire lazily on read, and
every ``sweep_every`` writes the whole map is purged of expired entries so
keys that are never read again do not accumulate.
"""

from __future__ import annotations

import math
import time
from typing import Callable

from contentguard.cache.base_cache_store import BaseCacheStore
from contentguard.cache.models import CacheEntry

DEFAULT_SWEEP_EVERY = 256


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed TTL cache."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = DEFAULT_SWEEP_EVERY,
    ) -> None:
        if sweep_every <= 0:
            raise ValueError("sweep_every must be > 0")
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock
        self._sweep_every = sweep_every
        self._writes = 0

    async def get(self, key: str) -> str | None:
        entry = self._live_entry(key)
        return entry.value if entry is not None else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._writes += 1
        if self._writes % self._sweep_every == 0:
            self.purge_expired()
        self._entries[key] = CacheEntry(
            key=key, value=value, expires_at=self._clock() + ttl_seconds
        )

    async def ttl(self, key: str) -> int | None:
        entry = self._live_entry(key)
        if entry is None:
            return None
        return math.ceil(entry.expires_at - self._clock())

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry
