# src/signals/base_signals.py - v1
"""Abstract remote signal interfaces with explicit readiness state.

Adapters are constructed once at process start and initialized through
initialize(); the pipeline never calls an adapter that is not ready and
records the signal as missing instead.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from contentguard.core.models import (
    ContentSafetySignal,
    LanguageSignal,
    NsfwLabel,
    RawDetection,
    RawFace,
    SentimentSignal,
)

logger = logging.getLogger(__name__)


class SignalAdapter(ABC):
    """Shared lifecycle for every signal adapter."""

    def __init__(self) -> None:
        self._ready = False
        self._init_error: str | None = None

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (http, lingua, ...)."""

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def init_error(self) -> str | None:
        """Reason the last initialize() failed, if it did."""
        return self._init_error

    async def initialize(self) -> bool:
        """Prepare the adapter. Never raises; failure leaves it not ready."""
        try:
            await self._setup()
        except Exception as e:
            self._ready = False
            self._init_error = str(e)
            logger.error(
                "Signal adapter %s failed to initialize: %s",
                type(self).__name__, e,
            )
            return False
        self._ready = True
        self._init_error = None
        return True

    async def _setup(self) -> None:
        """Provider-specific initialization. Default: nothing to do."""

    async def close(self) -> None:
        self._ready = False


class BaseSentimentAnalyzer(SignalAdapter):
    @abstractmethod
    async def analyze(self, text: str) -> SentimentSignal:
        """Document sentiment score in [-1, 1] and magnitude."""


class BaseLanguageDetector(SignalAdapter):
    @abstractmethod
    async def detect(self, text: str) -> LanguageSignal:
        """ISO 639-1 code and confidence."""


class BaseContentSafetyAnalyzer(SignalAdapter):
    @abstractmethod
    async def analyze(self, text: str) -> ContentSafetySignal:
        """Label -> confidence map; "negative" drives toxicity."""


class BaseImageClassifier(SignalAdapter):
    @abstractmethod
    async def nsfw(self, image: bytes) -> list[NsfwLabel]:
        """Raw NSFW label probabilities."""

    @abstractmethod
    async def detect_objects(self, image: bytes) -> list[RawDetection]:
        """Object detections in corner format."""

    @abstractmethod
    async def detect_faces(self, image: bytes) -> list[RawFace]:
        """Face detections in corner format with landmarks."""
