# src/cache/coordinator.py - v1
"""Cache/store coordinator: the fingerprint -> verdict mapping across both tiers.

Lookup order is ephemeral first, then durable; a durable hit backfills
the ephemeral tier with the configured TTL before returning. Commits go
durable first (create-if-absent, first writer wins) and then populate
the ephemeral tier. Ephemeral-tier failures are logged and degrade to
durable-only operation; durable failures on commit surface as
StoreFailure.
"""

from __future__ import annotations

import json
import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone
from typing import Any

from contentguard.cache.base_cache_store import BaseCacheStore
from contentguard.cache.base_record_store import BaseRecordStore
from contentguard.cache.fingerprint import DEFAULT_KEY_PREFIX, cache_key
from contentguard.cache.inflight import ComputeSlot, InFlightRegistry
from contentguard.cache.models import CommitOutcome, LookupResult
from contentguard.core.errors import CacheUnavailable, StoreFailure
from contentguard.core.models import (
    ClassificationRecord,
    ContentFingerprint,
    ModerationResult,
    dump_result,
    parse_result,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


class CacheCoordinator:
    """Owns lookup, commit and the in-flight guard for every fingerprint.

    Args:
        cache_store: Ephemeral tier. None runs durable-only.
        record_store: Durable, authoritative tier.
        ttl_seconds: TTL for every ephemeral write, including backfills.
        key_prefix: Ephemeral key prefix.
        inflight: In-flight registry (one per process).
    """

    def __init__(
        self,
        cache_store: BaseCacheStore | None,
        record_store: BaseRecordStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        inflight: InFlightRegistry | None = None,
    ) -> None:
        self._cache = cache_store
        self._store = record_store
        self._ttl = ttl_seconds
        self._prefix = key_prefix
        self._inflight = inflight or InFlightRegistry()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def key_for(self, fingerprint: ContentFingerprint) -> str:
        return cache_key(fingerprint, self._prefix)

    async def lookup(self, fingerprint: ContentFingerprint) -> LookupResult:
        """Two-tier lookup. Never waits on analyzer work."""
        key = self.key_for(fingerprint)

        cached = await self._cache_get(key)
        if cached is not None:
            try:
                result = parse_result(fingerprint.content_type, json.loads(cached))
            except ValueError:
                logger.warning("Discarding undecodable cache entry %s", key)
            else:
                logger.debug("Cache hit (ephemeral) for %s", key)
                return LookupResult(found=True, tier="ephemeral", result=result)

        try:
            record = await self._store.get(fingerprint)
        except StoreFailure as e:
            logger.error("Durable lookup failed for %s, treating as miss: %s", key, e)
            return LookupResult()

        if record is None:
            logger.debug("Cache miss for %s", key)
            return LookupResult()

        result = record.typed_result()
        await self._cache_set(key, result)
        logger.debug("Cache hit (durable) for %s, backfilled ephemeral tier", key)
        return LookupResult(found=True, tier="durable", result=result)

    async def commit(
        self,
        fingerprint: ContentFingerprint,
        result: ModerationResult,
        metadata: dict[str, Any] | None = None,
    ) -> CommitOutcome:
        """Write the durable record if absent, then populate the ephemeral tier.

        A concurrent duplicate commit is not an error: it returns
        ``already_exists`` with the stored verdict and still backfills.

        Raises:
            StoreFailure: If the durable tier rejected the write.
        """
        key = self.key_for(fingerprint)
        record = ClassificationRecord(
            fingerprint=fingerprint.hex,
            content_type=fingerprint.content_type,
            result=dump_result(result),
            created_at=datetime.now(timezone.utc),
            metadata=metadata or {},
        )

        created = await self._store.create_if_absent(record)
        if created:
            authoritative = result
        else:
            existing = await self._store.get(fingerprint)
            authoritative = existing.typed_result() if existing is not None else result
            logger.info("Record for %s already existed, keeping first write", key)

        await self._cache_set(key, authoritative)
        return CommitOutcome(
            status="committed" if created else "already_exists",
            result=authoritative,
        )

    def compute_slot(
        self, fingerprint: ContentFingerprint
    ) -> AbstractAsyncContextManager[ComputeSlot]:
        """Dedup guard: exclusive slot for the first caller, waiting slot otherwise."""
        return self._inflight.acquire(self.key_for(fingerprint))

    def is_in_flight(self, fingerprint: ContentFingerprint) -> bool:
        return self.key_for(fingerprint) in self._inflight

    async def close(self) -> None:
        if self._cache is not None:
            await self._cache.close()
        await self._store.close()

    # --- Ephemeral tier, degrading on failure ---

    async def _cache_get(self, key: str) -> str | None:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(key)
        except CacheUnavailable as e:
            logger.warning("Ephemeral tier unavailable, degrading to durable-only: %s", e)
            return None

    async def _cache_set(self, key: str, result: ModerationResult) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set(key, json.dumps(dump_result(result)), self._ttl)
        except CacheUnavailable as e:
            logger.warning("Ephemeral write skipped for %s: %s", key, e)
