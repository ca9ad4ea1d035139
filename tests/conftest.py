# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides settings with in-memory tiers, mocked signal adapters, a tiny
PNG and a ready-to-use pipeline. No external services: every remote
signal is an AsyncMock.
"""

from __future__ import annotations

from io import BytesIO
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from contentguard.cache.coordinator import CacheCoordinator
from contentguard.cache.memory_record_store import MemoryRecordStore
from contentguard.cache.memory_store import MemoryCacheStore
from contentguard.config.settings import Settings
from contentguard.core.models import (
    ContentSafetySignal,
    LanguageSignal,
    NsfwLabel,
    RawDetection,
    RawFace,
    SentimentSignal,
)
from contentguard.pipeline.moderation_pipeline import ModerationPipeline
from contentguard.signals.base_signals import (
    BaseContentSafetyAnalyzer,
    BaseImageClassifier,
    BaseLanguageDetector,
    BaseSentimentAnalyzer,
)
from contentguard.signals.signal_factory import SignalSuite


# === FIXTURES: Settings and content ===


@pytest.fixture
def settings() -> Settings:
    """Settings with in-memory tiers and fast timeouts."""
    return Settings(
        _env_file=None,
        cache_backend="memory",
        store_backend="memory",
        signal_timeout_s=1.0,
        dedup_wait_timeout_s=2.0,
        language_provider="none",
        job_retry_base_delay_s=0.0,
    )


def make_png(width: int = 4, height: int = 3, color: str = "red") -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    """A valid 4x3 PNG."""
    return make_png()


# === FIXTURES: Mock signal adapters ===


def ready_adapter(base: type, **methods: object) -> AsyncMock:
    """AsyncMock shaped like a ready adapter of the given base class."""
    adapter = AsyncMock(spec=base)
    adapter.is_ready = True
    adapter.provider_name = "mock"
    for name, value in methods.items():
        getattr(adapter, name).return_value = value
    return adapter


@pytest.fixture
def sentiment_adapter() -> AsyncMock:
    return ready_adapter(
        BaseSentimentAnalyzer, analyze=SentimentSignal(score=0.5, magnitude=1.2)
    )


@pytest.fixture
def content_safety_adapter() -> AsyncMock:
    return ready_adapter(
        BaseContentSafetyAnalyzer,
        analyze=ContentSafetySignal(
            categories={"positive": 0.7, "neutral": 0.2, "negative": 0.1}
        ),
    )


@pytest.fixture
def language_adapter() -> AsyncMock:
    return ready_adapter(
        BaseLanguageDetector, detect=LanguageSignal(code="en", confidence=0.98)
    )


@pytest.fixture
def image_adapter() -> AsyncMock:
    return ready_adapter(
        BaseImageClassifier,
        nsfw=[
            NsfwLabel(label="Neutral", probability=0.8),
            NsfwLabel(label="Porn", probability=0.1),
            NsfwLabel(label="Hentai", probability=0.05),
            NsfwLabel(label="Sexy", probability=0.05),
        ],
        detect_objects=[
            RawDetection(label="cat", confidence=0.9, box=(10, 20, 50, 80)),
            RawDetection(label="hat", confidence=0.3, box=(0, 0, 5, 5)),
        ],
        detect_faces=[
            RawFace(confidence=0.95, box=(1, 1, 3, 3), landmarks=[(1.5, 1.5), (2.5, 1.5)]),
        ],
    )


@pytest.fixture
def signals(
    sentiment_adapter, content_safety_adapter, language_adapter, image_adapter
) -> SignalSuite:
    return SignalSuite(
        sentiment=sentiment_adapter,
        language=language_adapter,
        content_safety=content_safety_adapter,
        image=image_adapter,
    )


# === FIXTURES: Tiers and pipeline ===


@pytest.fixture
def cache_store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def record_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def coordinator(cache_store, record_store) -> CacheCoordinator:
    return CacheCoordinator(cache_store, record_store, ttl_seconds=3600)


@pytest.fixture
def pipeline(coordinator, signals, settings) -> ModerationPipeline:
    return ModerationPipeline(coordinator, signals, settings=settings)
