# tests/unit/signals/test_signal_factory.py - v1
"""Tests for signals/signal_factory.py."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from contentguard.config.settings import Settings
from contentguard.signals.adapters.http_adapter import (
    HttpImageClassifier,
    HttpSentimentAnalyzer,
)
from contentguard.signals.adapters.lingua_adapter import LinguaLanguageDetector
from contentguard.signals.base_signals import BaseLanguageDetector, BaseSentimentAnalyzer
from contentguard.signals.signal_factory import (
    SignalSuite,
    UnsupportedProviderError,
    _ADAPTER_REGISTRY,
    create_signal_adapter,
    create_signal_suite,
    register_adapter,
)


class TestCreateSignalAdapter:
    def test_none_provider(self):
        assert create_signal_adapter("sentiment", "none") is None

    def test_http_from_settings(self):
        settings = Settings(
            _env_file=None,
            sentiment_endpoint="http://svc/sentiment",
            sentiment_api_key="secret",
            signal_timeout_s=3.0,
        )
        adapter = create_signal_adapter("sentiment", "http", settings)
        assert isinstance(adapter, HttpSentimentAnalyzer)
        assert adapter._http._endpoint == "http://svc/sentiment"
        assert adapter._http._api_key == "secret"
        assert adapter._http._timeout_s == 3.0

    def test_kwargs_override_settings(self):
        settings = Settings(_env_file=None, image_endpoint="http://a")
        adapter = create_signal_adapter("image", "http", settings, endpoint="http://b")
        assert isinstance(adapter, HttpImageClassifier)
        assert adapter._http._endpoint == "http://b"

    def test_lingua(self):
        adapter = create_signal_adapter("language", "lingua", languages=["en"])
        assert isinstance(adapter, LinguaLanguageDetector)
        assert adapter.is_ready is False

    def test_unsupported(self):
        with pytest.raises(UnsupportedProviderError, match="Available: http"):
            create_signal_adapter("sentiment", "lingua")

    def test_register_custom(self):
        key = ("language", "custom")
        try:
            register_adapter(
                "language", "custom",
                "contentguard.signals.adapters.lingua_adapter.LinguaLanguageDetector",
            )
            assert isinstance(create_signal_adapter("language", "custom"), LinguaLanguageDetector)
        finally:
            _ADAPTER_REGISTRY.pop(key, None)


class TestCreateSignalSuite:
    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            sentiment_provider="http",
            sentiment_endpoint="http://svc/s",
            language_provider="lingua",
        )
        suite = create_signal_suite(settings)
        assert isinstance(suite.sentiment, HttpSentimentAnalyzer)
        assert isinstance(suite.language, LinguaLanguageDetector)
        assert suite.content_safety is None
        assert suite.image is None
        assert set(suite.adapters()) == {"sentiment", "language"}


class TestSignalSuite:
    @pytest.mark.asyncio
    async def test_initialize_all(self):
        ok = AsyncMock(spec=BaseSentimentAnalyzer)
        ok.initialize.return_value = True
        bad = AsyncMock(spec=BaseLanguageDetector)
        bad.initialize.return_value = False
        suite = SignalSuite(sentiment=ok, language=bad)
        assert await suite.initialize_all() == {"sentiment": True, "language": False}

    @pytest.mark.asyncio
    async def test_close_all_continues_after_failure(self):
        first = AsyncMock(spec=BaseSentimentAnalyzer)
        first.close.side_effect = RuntimeError("boom")
        second = AsyncMock(spec=BaseLanguageDetector)
        await SignalSuite(sentiment=first, language=second).close_all()
        second.close.assert_awaited_once()

    def test_empty_suite(self):
        assert SignalSuite().adapters() == {}
