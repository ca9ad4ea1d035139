# tests/unit/config/test_settings.py - v2
"""Tests for config/settings.py - typed Settings and validation rules."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from contentguard.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_tiers(self):
        s = Settings(_env_file=None)
        assert s.cache_backend == "memory"
        assert s.store_backend == "sqlite"
        assert s.cache_ttl_seconds == 3600
        assert s.cache_key_prefix == "moderation"

    def test_default_spam_thresholds(self):
        s = Settings(_env_file=None)
        assert s.spam_threshold == 0.7
        assert s.spam_repetition_threshold == 0.3
        assert s.spam_link_density_threshold == 0.1
        assert s.spam_monetization_threshold == 0.4
        assert s.spam_urgency_threshold == 0.3
        assert s.spam_deception_threshold == 0.3

    def test_default_spam_weights_sum_to_one(self):
        s = Settings(_env_file=None)
        assert s.spam_weight_total == pytest.approx(1.0)

    def test_default_limits(self):
        s = Settings(_env_file=None)
        assert s.max_text_length == 10_000
        assert s.max_image_bytes == 5 * 1024 * 1024
        assert s.detection_confidence_floor == 0.5
        assert s.job_retention == 1000

    def test_default_signal_providers(self):
        s = Settings(_env_file=None)
        assert s.language_provider == "lingua"
        assert s.sentiment_provider == "none"
        assert s.require_all_signals is False


class TestSettingsValidation:
    def test_redis_without_url(self):
        with pytest.raises(ConfigurationError, match="CACHE_REDIS_URL"):
            Settings(_env_file=None, cache_backend="redis")

    def test_redis_with_url(self):
        s = Settings(
            _env_file=None, cache_backend="redis", cache_redis_url="redis://localhost:6379/0"
        )
        assert s.cache_redis_url.startswith("redis://")

    def test_all_weights_zero(self):
        with pytest.raises(ConfigurationError, match="SPAM_WEIGHT"):
            Settings(
                _env_file=None,
                spam_weight_repetition=0,
                spam_weight_formatting=0,
                spam_weight_links=0,
                spam_weight_patterns=0,
            )

    def test_http_provider_without_endpoint(self):
        with pytest.raises(ConfigurationError, match="SENTIMENT_ENDPOINT"):
            Settings(_env_file=None, sentiment_provider="http")

    def test_multiple_errors_joined(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(
                _env_file=None,
                cache_backend="redis",
                image_provider="http",
            )
        message = str(exc_info.value)
        assert "CACHE_REDIS_URL" in message
        assert "IMAGE_ENDPOINT" in message

    def test_non_positive_signal_timeout(self):
        with pytest.raises(ConfigurationError, match="SIGNAL_TIMEOUT_S"):
            Settings(_env_file=None, signal_timeout_s=0)

    def test_threshold_out_of_range(self):
        with pytest.raises(ValidationError, match="spam_threshold"):
            Settings(_env_file=None, spam_threshold=1.5)

    def test_negative_weight(self):
        with pytest.raises(ValidationError, match="spam_weight_links"):
            Settings(_env_file=None, spam_weight_links=-0.1)

    def test_non_positive_ttl(self):
        with pytest.raises(ValidationError, match="cache_ttl_seconds"):
            Settings(_env_file=None, cache_ttl_seconds=0)

    def test_non_positive_job_retention(self):
        with pytest.raises(ValidationError, match="job_retention"):
            Settings(_env_file=None, job_retention=0)


class TestLoadSettings:
    def test_overrides(self):
        s = load_settings(_env_file=None, cache_ttl_seconds=60, store_backend="memory")
        assert s.cache_ttl_seconds == 60
        assert s.store_backend == "memory"

    def test_env_variables(self, monkeypatch):
        monkeypatch.setenv("SPAM_THRESHOLD", "0.55")
        monkeypatch.setenv("CACHE_TTL_SECONDS", "120")
        s = load_settings(_env_file=None)
        assert s.spam_threshold == 0.55
        assert s.cache_ttl_seconds == 120
