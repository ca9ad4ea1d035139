# src/cache/sqlite_store.py - v2
"""SQLite-based durable store (STORE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. The primary key on
(fingerprint, content_type) is the uniqueness constraint; INSERT OR
IGNORE gives create-if-absent, so the first writer wins and later
writers are no-ops.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from contentguard.cache.base_record_store import BaseRecordStore
from contentguard.core.errors import StoreFailure
from contentguard.core.models import ClassificationRecord, ContentFingerprint

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS content_classifications (
    fingerprint TEXT NOT NULL,
    content_type TEXT NOT NULL,
    result TEXT NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    PRIMARY KEY (fingerprint, content_type)
);
"""


class SqliteRecordStore(BaseRecordStore):
    """SQLite-backed append-only classification store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(str(self._db_path))
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise StoreFailure(f"Cannot open store at {self._db_path}: {e}") from e

    async def get(self, fingerprint: ContentFingerprint) -> ClassificationRecord | None:
        """Retrieve the record for a fingerprint."""
        try:
            cursor = self._conn.execute(
                """SELECT fingerprint, content_type, result, metadata, created_at
                   FROM content_classifications
                   WHERE fingerprint = ? AND content_type = ?""",
                (fingerprint.hex, fingerprint.content_type),
            )
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreFailure(f"Store read failed for {fingerprint.hex}: {e}") from e

        if row is None:
            return None
        return ClassificationRecord(
            fingerprint=row[0],
            content_type=row[1],
            result=json.loads(row[2]),
            metadata=json.loads(row[3]),
            created_at=datetime.fromisoformat(row[4]),
        )

    async def create_if_absent(self, record: ClassificationRecord) -> bool:
        """Insert unless a record exists for the same key."""
        try:
            cursor = self._conn.execute(
                """INSERT OR IGNORE INTO content_classifications
                   (fingerprint, content_type, result, metadata, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    record.fingerprint,
                    record.content_type,
                    json.dumps(record.result),
                    json.dumps(record.metadata, default=str),
                    record.created_at.isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreFailure(
                f"Store write failed for {record.fingerprint}: {e}"
            ) from e

        created = cursor.rowcount == 1
        if not created:
            logger.debug("Record already exists for %s", record.fingerprint)
        return created

    async def count(self) -> int:
        try:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM content_classifications"
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreFailure(f"Store count failed: {e}") from e
        return int(row[0])

    async def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
