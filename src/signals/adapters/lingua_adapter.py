# src/signals/adapters/lingua_adapter.py - v1
"""Local language detection using lingua-py.

The detector is built once in initialize() and its CPU-bound calls run
in a worker thread so they do not block the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from contentguard.core.errors import AdapterFailure
from contentguard.core.models import LanguageSignal
from contentguard.signals.base_signals import BaseLanguageDetector

logger = logging.getLogger(__name__)

UNKNOWN_LANGUAGE = "unknown"
_MAX_SAMPLE_CHARS = 3000


class LinguaLanguageDetector(BaseLanguageDetector):
    """Language detector over all lingua languages (or a given subset)."""

    def __init__(self, languages: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__()
        self._languages = languages
        self._detector: Any = None

    @property
    def provider_name(self) -> str:
        return "lingua"

    async def _setup(self) -> None:
        self._detector = await asyncio.to_thread(self._build)
        logger.info("lingua detector ready")

    def _build(self) -> Any:
        from lingua import IsoCode639_1, LanguageDetectorBuilder

        if not self._languages:
            return LanguageDetectorBuilder.from_all_languages().build()
        codes = [getattr(IsoCode639_1, code.upper()) for code in self._languages]
        return LanguageDetectorBuilder.from_iso_codes_639_1(*codes).build()

    async def detect(self, text: str) -> LanguageSignal:
        if self._detector is None:
            raise AdapterFailure("language", "detector not initialized")
        values = await asyncio.to_thread(
            self._detector.compute_language_confidence_values,
            text[:_MAX_SAMPLE_CHARS],
        )
        top = values[0] if values else None
        if top is None or top.value <= 0:
            return LanguageSignal(code=UNKNOWN_LANGUAGE, confidence=0.0)
        return LanguageSignal(
            code=top.language.iso_code_639_1.name.lower(),
            confidence=min(max(float(top.value), 0.0), 1.0),
        )

    async def close(self) -> None:
        self._detector = None
        await super().close()
