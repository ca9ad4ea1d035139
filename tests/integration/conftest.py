# tests/integration/conftest.py - v8
"""Shared fixtures for integration tests.

No external services: the durable tier is a real SQLite file under
tmp_path, the ephemeral tier is in-process, and remote signals come from
the mocked adapters in tests/conftest.py.
"""

from __future__ import annotations

import pytest
import pytest_asyncio

from contentguard.cache.coordinator import CacheCoordinator
from contentguard.cache.memory_store import MemoryCacheStore
from contentguard.cache.sqlite_store import SqliteRecordStore


def pytest_collection_modifyitems(items):
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "store" / "moderation.db"


@pytest_asyncio.fixture
async def sqlite_store(db_path):
    store = SqliteRecordStore(db_path)
    yield store
    await store.close()


@pytest.fixture
def sqlite_coordinator(sqlite_store) -> CacheCoordinator:
    return CacheCoordinator(MemoryCacheStore(), sqlite_store, ttl_seconds=600)
