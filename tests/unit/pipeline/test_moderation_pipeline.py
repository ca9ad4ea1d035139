# tests/unit/pipeline/test_moderation_pipeline.py - v1
"""Tests for pipeline/moderation_pipeline.py - memoization, dedup, degradation."""

from __future__ import annotations

import asyncio
import base64
from unittest.mock import MagicMock

import pytest

from contentguard.api.models import BatchItem
from contentguard.cache.coordinator import CacheCoordinator
from contentguard.cache.fingerprint import compute_fingerprint
from contentguard.cache.memory_store import MemoryCacheStore
from contentguard.core.errors import (
    AdapterFailure,
    ContentValidationError,
    ModerationFailed,
    StoreFailure,
    UnsupportedContentTypeError,
)
from contentguard.core.models import ImageAnalysisResult, SentimentSignal, TextModerationResult
from contentguard.core.retry import RetryConfig
from contentguard.pipeline.moderation_pipeline import GENERIC_FAILURE_MESSAGE, ModerationPipeline

_FAST_RETRY = {"store_failure": RetryConfig(max_retries=3, base_delay_s=0.0, jitter=False)}


async def _settle(pipeline: ModerationPipeline) -> None:
    for _ in range(100):
        if pipeline.pending_persistence == 0:
            return
        await asyncio.sleep(0.01)


class TestTextModeration:
    @pytest.mark.asyncio
    async def test_verdict(self, pipeline):
        result = await pipeline.moderate_text("have a nice day")
        assert isinstance(result, TextModerationResult)
        assert result.sentiment.label == "positive"
        assert result.language.detected == "en"
        assert result.toxicity.score == pytest.approx(0.1)
        assert result.toxicity.categories.hate == pytest.approx(0.08)
        assert len(result.classifications) == 3
        assert result.missing_signals == []
        assert result.spam.is_spam is False

    @pytest.mark.asyncio
    async def test_idempotent(self, pipeline, record_store, sentiment_adapter):
        first = await pipeline.moderate_text("same words")
        second = await pipeline.moderate_text("same words")
        assert first.model_dump_json() == second.model_dump_json()
        assert await record_store.count() == 1
        assert sentiment_adapter.analyze.await_count == 1

    @pytest.mark.asyncio
    async def test_durable_hit_after_cache_loss(
        self, pipeline, record_store, signals, settings, sentiment_adapter
    ):
        first = await pipeline.moderate_text("remember me")
        fresh = ModerationPipeline(
            CacheCoordinator(MemoryCacheStore(), record_store), signals, settings=settings
        )
        second = await fresh.moderate_text("remember me")
        assert second == first
        assert sentiment_adapter.analyze.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_input_touches_nothing(self, pipeline, record_store, cache_store, sentiment_adapter):
        with pytest.raises(ContentValidationError):
            await pipeline.moderate_text("   ")
        with pytest.raises(UnsupportedContentTypeError):
            await pipeline.moderate("hello", "video")
        with pytest.raises(ContentValidationError):
            await pipeline.moderate_text("hello \ud800 world")
        assert await record_store.count() == 0
        assert len(cache_store) == 0
        sentiment_adapter.analyze.assert_not_awaited()


class TestDedup:
    @pytest.mark.asyncio
    async def test_concurrent_duplicates_analyze_once(self, pipeline, sentiment_adapter, record_store):
        gate = asyncio.Event()

        async def slow_sentiment(text):
            await gate.wait()
            return SentimentSignal(score=0.5, magnitude=1.2)

        sentiment_adapter.analyze.side_effect = slow_sentiment
        tasks = [asyncio.create_task(pipeline.moderate_text("viral post")) for _ in range(8)]
        await asyncio.sleep(0.05)
        assert pipeline.coordinator.is_in_flight(compute_fingerprint("viral post", "text"))

        gate.set()
        results = await asyncio.gather(*tasks)

        assert sentiment_adapter.analyze.await_count == 1
        assert len({r.model_dump_json() for r in results}) == 1
        assert await record_store.count() == 1
        assert not pipeline.coordinator.is_in_flight(compute_fingerprint("viral post", "text"))

    @pytest.mark.asyncio
    async def test_waiters_fail_retryable_when_winner_crashes(self, pipeline, coordinator):
        gate = asyncio.Event()

        async def crashing_commit(*args, **kwargs):
            await gate.wait()
            raise RuntimeError("disk controller fault")

        coordinator.commit = crashing_commit
        winner = asyncio.create_task(pipeline.moderate_text("boom"))
        await asyncio.sleep(0.01)
        waiter = asyncio.create_task(pipeline.moderate_text("boom"))
        await asyncio.sleep(0.01)
        gate.set()

        with pytest.raises(ModerationFailed) as winner_exc:
            await winner
        assert str(winner_exc.value) == GENERIC_FAILURE_MESSAGE
        assert winner_exc.value.retryable is False

        with pytest.raises(ModerationFailed) as waiter_exc:
            await waiter
        assert waiter_exc.value.retryable is True
        assert not coordinator.is_in_flight(compute_fingerprint("boom", "text"))


class TestDegradation:
    @pytest.mark.asyncio
    async def test_failed_signal_reported_missing(self, pipeline, language_adapter):
        language_adapter.detect.side_effect = AdapterFailure("language", "HTTP 502")
        result = await pipeline.moderate_text("bonjour")
        assert result.language.detected == "unknown"
        assert result.language.confidence == 0.0
        assert result.missing_signals == ["language"]
        assert result.sentiment.label == "positive"

    @pytest.mark.asyncio
    async def test_slow_signal_times_out(self, coordinator, signals, settings, sentiment_adapter):
        async def hang(text):
            await asyncio.sleep(5)

        sentiment_adapter.analyze.side_effect = hang
        fast = settings.model_copy(update={"signal_timeout_s": 0.05})
        result = await ModerationPipeline(coordinator, signals, settings=fast).moderate_text("hi")
        assert result.sentiment.label == "neutral"
        assert result.missing_signals == ["sentiment"]

    @pytest.mark.asyncio
    async def test_not_ready_adapter_skipped(self, pipeline, content_safety_adapter):
        content_safety_adapter.is_ready = False
        result = await pipeline.moderate_text("hello")
        content_safety_adapter.analyze.assert_not_awaited()
        assert result.toxicity.score == 0.0
        assert result.classifications == []

    @pytest.mark.asyncio
    async def test_require_all_signals(self, coordinator, signals, settings, language_adapter, record_store):
        language_adapter.detect.side_effect = AdapterFailure("language", "down")
        strict = settings.model_copy(update={"require_all_signals": True})
        with pytest.raises(AdapterFailure):
            await ModerationPipeline(coordinator, signals, settings=strict).moderate_text("hello")
        assert await record_store.count() == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic(self, coordinator, signals, settings):
        spam = MagicMock()
        spam.analyze.side_effect = ZeroDivisionError("oops")
        pipeline = ModerationPipeline(coordinator, signals, settings=settings, spam=spam)
        with pytest.raises(ModerationFailed) as exc_info:
            await pipeline.moderate_text("hello")
        assert str(exc_info.value) == GENERIC_FAILURE_MESSAGE
        assert "oops" not in str(exc_info.value)


class TestPersistenceFailure:
    @pytest.mark.asyncio
    async def test_result_returned_and_retried(self, coordinator, signals, settings, record_store):
        real_create = record_store.create_if_absent
        calls = []

        async def flaky_create(record):
            calls.append(record.fingerprint)
            if len(calls) == 1:
                raise StoreFailure("database is locked")
            return await real_create(record)

        record_store.create_if_absent = flaky_create
        pipeline = ModerationPipeline(
            coordinator, signals, settings=settings, retry_configs=_FAST_RETRY
        )

        result = await pipeline.moderate_text("persist me")
        assert result.language.detected == "en"
        assert await record_store.count() == 0
        assert pipeline.pending_persistence == 1

        await _settle(pipeline)
        assert pipeline.pending_persistence == 0
        assert await record_store.count() == 1
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_close_cancels_pending_retries(self, coordinator, signals, settings, record_store):
        async def always_fail(record):
            raise StoreFailure("read-only filesystem")

        record_store.create_if_absent = always_fail
        slow_retry = {"store_failure": RetryConfig(max_retries=5, base_delay_s=10.0, jitter=False)}
        pipeline = ModerationPipeline(
            coordinator, signals, settings=settings, retry_configs=slow_retry
        )
        await pipeline.moderate_text("never stored")
        await asyncio.sleep(0)
        assert pipeline.pending_persistence == 1
        await pipeline.close()
        assert pipeline.pending_persistence == 0


class TestImageModeration:
    @pytest.mark.asyncio
    async def test_verdict(self, pipeline, png_bytes):
        result = await pipeline.moderate_image(png_bytes)
        assert isinstance(result, ImageAnalysisResult)
        assert result.nsfw.categories.adult == pytest.approx(0.1)
        assert result.nsfw.categories.suggestive == pytest.approx(0.05)
        assert result.nsfw.score == pytest.approx(0.1)
        assert [o.class_ for o in result.objects] == ["cat"]
        assert (result.objects[0].bbox.width, result.objects[0].bbox.height) == (40, 60)
        assert result.faces.count == 1
        assert len(result.faces.detections[0].landmarks) == 2
        assert result.metadata.format == "png"
        assert (result.metadata.dimensions.width, result.metadata.dimensions.height) == (4, 3)

    @pytest.mark.asyncio
    async def test_base64_and_bytes_share_fingerprint(self, pipeline, png_bytes, image_adapter):
        first = await pipeline.moderate_image(png_bytes)
        second = await pipeline.moderate_image(base64.b64encode(png_bytes).decode())
        assert first == second
        assert image_adapter.nsfw.await_count == 1

    @pytest.mark.asyncio
    async def test_no_image_adapter(self, coordinator, signals, settings, png_bytes):
        signals.image = None
        result = await ModerationPipeline(coordinator, signals, settings=settings).moderate_image(png_bytes)
        assert result.missing_signals == ["faces", "nsfw", "objects"]
        assert result.nsfw.score == 0.0
        assert result.metadata.size == len(png_bytes)

    @pytest.mark.asyncio
    async def test_text_and_image_never_alias(self, pipeline, record_store, png_bytes):
        # Same canonical bytes: the image is hashed over its base64 form.
        encoded = base64.b64encode(png_bytes).decode()
        assert compute_fingerprint(encoded, "text").hex == compute_fingerprint(png_bytes, "image").hex

        text_result = await pipeline.moderate_text(encoded)
        image_result = await pipeline.moderate_image(png_bytes)
        assert isinstance(text_result, TextModerationResult)
        assert isinstance(image_result, ImageAnalysisResult)
        assert await record_store.count() == 2


class TestBatch:
    @pytest.mark.asyncio
    async def test_mixed_batch(self, pipeline, png_bytes):
        results = await pipeline.moderate_batch([
            {"type": "text", "content": "first"},
            BatchItem(type="image", content=png_bytes),
            {"type": "text", "content": "second"},
        ])
        assert [type(r) for r in results] == [
            TextModerationResult, ImageAnalysisResult, TextModerationResult,
        ]

    @pytest.mark.asyncio
    async def test_unsupported_type_has_no_side_effects(self, pipeline, record_store, sentiment_adapter):
        with pytest.raises(UnsupportedContentTypeError):
            await pipeline.moderate_batch([
                {"type": "text", "content": "fine"},
                {"type": "video", "content": "clip"},
            ])
        assert await record_store.count() == 0
        sentiment_adapter.analyze.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_item_fails_batch(self, pipeline):
        with pytest.raises(ContentValidationError):
            await pipeline.moderate_batch([
                {"type": "text", "content": "ok"},
                {"type": "text", "content": ""},
            ])

    @pytest.mark.asyncio
    async def test_duplicate_items_analyzed_once(self, pipeline, sentiment_adapter):
        results = await pipeline.moderate_batch(
            [{"type": "text", "content": "dup"}] * 4
        )
        assert len(results) == 4
        assert sentiment_adapter.analyze.await_count == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self, pipeline):
        assert await pipeline.moderate_batch([]) == []
