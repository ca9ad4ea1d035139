# src/config/settings.py - v3
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for cache/store wiring, signal adapters, spam and
detection thresholds, input limits, job queue sizing and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Ephemeral cache tier ===
    cache_backend: Literal["memory", "redis"] = "memory"
    cache_redis_url: str = ""
    cache_ttl_seconds: int = 3600
    cache_key_prefix: str = "moderation"

    # === Durable store ===
    store_backend: Literal["memory", "sqlite"] = "sqlite"
    store_path: Path = Path("~/.contentguard/moderation.db")

    # === In-flight dedup ===
    dedup_wait_timeout_s: float = 30.0

    # === Remote signals ===
    signal_timeout_s: float = 10.0
    require_all_signals: bool = False

    sentiment_provider: Literal["http", "none"] = "none"
    sentiment_endpoint: str = ""
    sentiment_api_key: str = ""

    content_safety_provider: Literal["http", "none"] = "none"
    content_safety_endpoint: str = ""
    content_safety_api_key: str = ""

    language_provider: Literal["lingua", "http", "none"] = "lingua"
    language_endpoint: str = ""
    language_api_key: str = ""

    image_provider: Literal["http", "none"] = "none"
    image_endpoint: str = ""
    image_api_key: str = ""

    # === Spam heuristics ===
    spam_threshold: float = 0.7
    spam_repetition_threshold: float = 0.3
    spam_link_density_threshold: float = 0.1
    spam_monetization_threshold: float = 0.4
    spam_urgency_threshold: float = 0.3
    spam_deception_threshold: float = 0.3

    spam_weight_repetition: float = 0.20
    spam_weight_formatting: float = 0.15
    spam_weight_links: float = 0.30
    spam_weight_patterns: float = 0.35

    spam_monetization_patterns: list[str] = [
        r"\b(free|discount|save|offer|deal|limited[- ]time)\b",
        r"\b(\d+%|percent)\s+off\b",
    ]
    spam_urgency_patterns: list[str] = [
        r"\b(urgent|hurry|limited|expires?|ending)\b",
        r"\b(today|now|soon)\s+only\b",
    ]
    spam_deception_patterns: list[str] = [
        r"\b(guarantee|promise|risk[- ]free)\b",
        r"\b(no\s+risk|absolutely)\b|100%",
    ]

    # === Image detections ===
    detection_confidence_floor: float = 0.5

    # === Profanity ===
    profanity_rules_path: Path | None = None

    # === Input limits ===
    max_text_length: int = 10_000
    max_image_bytes: int = 5 * 1024 * 1024

    # === Job queue ===
    job_queue_workers: int = 4
    job_max_attempts: int = 3
    job_retry_base_delay_s: float = 1.0
    job_retention: int = 1000

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "spam_threshold",
        "spam_repetition_threshold",
        "spam_link_density_threshold",
        "spam_monetization_threshold",
        "spam_urgency_threshold",
        "spam_deception_threshold",
        "detection_confidence_floor",
    )
    @classmethod
    def validate_unit_interval(cls, v: float, info) -> float:  # noqa: N805
        """Thresholds and floors are fractions."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"{info.field_name} must be within [0, 1]")
        return v

    @field_validator(
        "spam_weight_repetition",
        "spam_weight_formatting",
        "spam_weight_links",
        "spam_weight_patterns",
    )
    @classmethod
    def validate_weight(cls, v: float, info) -> float:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator(
        "cache_ttl_seconds",
        "max_text_length",
        "max_image_bytes",
        "job_queue_workers",
        "job_max_attempts",
        "job_retention",
    )
    @classmethod
    def validate_positive(cls, v: int, info) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Collect cross-field inconsistencies into one ConfigurationError."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        if self.spam_weight_total <= 0:
            errors.append("SPAM_WEIGHT_* must not all be zero")

        for signal in ("sentiment", "content_safety", "language", "image"):
            provider = getattr(self, f"{signal}_provider")
            endpoint = getattr(self, f"{signal}_endpoint")
            if provider == "http" and not endpoint:
                errors.append(
                    f"{signal.upper()}_PROVIDER=http requires {signal.upper()}_ENDPOINT"
                )

        if self.signal_timeout_s <= 0:
            errors.append("SIGNAL_TIMEOUT_S must be > 0")
        if self.dedup_wait_timeout_s <= 0:
            errors.append("DEDUP_WAIT_TIMEOUT_S must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def spam_weight_total(self) -> float:
        return (
            self.spam_weight_repetition
            + self.spam_weight_formatting
            + self.spam_weight_links
            + self.spam_weight_patterns
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-deployment config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
