# src/cache/base_record_store.py - v1
"""Abstract durable record store interface (authoritative tier)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from contentguard.core.models import ClassificationRecord, ContentFingerprint


class BaseRecordStore(ABC):
    """One ClassificationRecord per (fingerprint, content type), never mutated.

    Implementations raise ``StoreFailure`` when the backend cannot be
    read or written.
    """

    @abstractmethod
    async def get(self, fingerprint: ContentFingerprint) -> ClassificationRecord | None:
        """Return the record for a fingerprint, or None."""

    @abstractmethod
    async def create_if_absent(self, record: ClassificationRecord) -> bool:
        """Insert the record unless one exists. True if this call created it."""

    @abstractmethod
    async def count(self) -> int:
        """Number of stored records."""

    async def close(self) -> None:
        """Release connections. Default: nothing to release."""
