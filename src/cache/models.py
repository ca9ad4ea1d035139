# src/cache/models.py - v2
"""Cache domain models: CacheEntry, LookupResult, CommitOutcome."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from contentguard.core.models import ImageAnalysisResult, TextModerationResult


class CacheEntry(BaseModel):
    """Ephemeral copy of a serialized verdict with its expiry (monotonic seconds)."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class LookupResult(BaseModel):
    """Outcome of a two-tier lookup."""

    found: bool = False
    tier: Literal["ephemeral", "durable"] | None = None
    result: TextModerationResult | ImageAnalysisResult | None = None


class CommitOutcome(BaseModel):
    """Outcome of a first-writer-wins commit.

    ``result`` is the authoritative verdict: the caller's own on
    ``committed``, the previously stored one on ``already_exists``.
    """

    status: Literal["committed", "already_exists"]
    result: TextModerationResult | ImageAnalysisResult
