# src/cache/memory_record_store.py - v1
"""In-process durable store (STORE_BACKEND=memory). Tests and local runs only."""

from __future__ import annotations

from contentguard.cache.base_record_store import BaseRecordStore
from contentguard.core.models import ClassificationRecord, ContentFingerprint


class MemoryRecordStore(BaseRecordStore):
    """Dict-backed create-if-absent store."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], ClassificationRecord] = {}

    async def get(self, fingerprint: ContentFingerprint) -> ClassificationRecord | None:
        return self._records.get((fingerprint.hex, fingerprint.content_type))

    async def create_if_absent(self, record: ClassificationRecord) -> bool:
        key = (record.fingerprint, record.content_type)
        if key in self._records:
            return False
        self._records[key] = record
        return True

    async def count(self) -> int:
        return len(self._records)
