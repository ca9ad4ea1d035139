# tests/integration/test_int_moderation_flow.py - v1
"""End-to-end moderation over a real SQLite store with mocked remote signals.

Coverage targets: api/facade.py, moderation_pipeline.py, coordinator.py,
sqlite_store.py, job_queue.py
"""

from __future__ import annotations

import asyncio

import pytest

from contentguard.api.facade import ModerationService
from contentguard.cache.coordinator import CacheCoordinator
from contentguard.cache.memory_store import MemoryCacheStore
from contentguard.cache.sqlite_store import SqliteRecordStore
from contentguard.core.models import SentimentSignal


class TestModerationFlow:
    @pytest.mark.asyncio
    async def test_verdict_survives_restart(self, settings, signals, db_path, sentiment_adapter):
        async with await ModerationService.create(
            settings,
            coordinator=CacheCoordinator(MemoryCacheStore(), SqliteRecordStore(db_path)),
            signals=signals,
        ) as service:
            first = await service.moderate_text("Limited offer, click now!")

        # New process: empty ephemeral tier, same database file.
        async with await ModerationService.create(
            settings,
            coordinator=CacheCoordinator(MemoryCacheStore(), SqliteRecordStore(db_path)),
            signals=signals,
        ) as service:
            second = await service.moderate_text("Limited offer, click now!")

        assert second.model_dump_json() == first.model_dump_json()
        assert sentiment_adapter.analyze.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_identical_requests(self, settings, signals, sqlite_coordinator, sqlite_store, sentiment_adapter):
        gate = asyncio.Event()

        async def slow(text):
            await gate.wait()
            return SentimentSignal(score=-0.6, magnitude=0.9)

        sentiment_adapter.analyze.side_effect = slow
        async with await ModerationService.create(
            settings, coordinator=sqlite_coordinator, signals=signals, with_job_queue=False
        ) as service:
            tasks = [asyncio.create_task(service.moderate_text("breaking news")) for _ in range(10)]
            await asyncio.sleep(0.05)
            gate.set()
            results = await asyncio.gather(*tasks)
            assert await sqlite_store.count() == 1

        assert {r.sentiment.label for r in results} == {"negative"}
        assert sentiment_adapter.analyze.await_count == 1

    @pytest.mark.asyncio
    async def test_jobs_and_batch_share_records(self, settings, signals, sqlite_coordinator, sqlite_store, png_bytes, image_adapter):
        async with await ModerationService.create(
            settings, coordinator=sqlite_coordinator, signals=signals
        ) as service:
            job_ids = [
                await service.submit_job("queued one", "text"),
                await service.submit_job(png_bytes, "image"),
            ]
            jobs = [await service.wait_job(job_id, timeout_s=5) for job_id in job_ids]
            batch = await service.moderate_batch(
                [{"type": "text", "content": "queued one"}, {"type": "image", "content": png_bytes}]
            )
            assert await sqlite_store.count() == 2

        assert [job.status for job in jobs] == ["succeeded", "succeeded"]
        assert batch[0] == jobs[0].result
        assert batch[1] == jobs[1].result
        assert image_adapter.nsfw.await_count == 1
