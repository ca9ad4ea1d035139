# src/api/facade.py - v1
"""Public API facade: single entry point for moderation.

Usage:
    from contentguard.api.facade import ModerationService

    async with await ModerationService.create() as service:
        verdict = await service.moderate_text("hello there")

The service is built once per process: adapters are initialized at
startup with an explicit readiness state, and shutdown closes adapters,
both cache tiers and the job queue workers.
"""

from __future__ import annotations

import logging
from typing import Any

from contentguard.analysis.profanity import ProfanityAnalyzer
from contentguard.api.models import BatchItem, ErrorResponse
from contentguard.cache.cache_factory import create_coordinator
from contentguard.cache.coordinator import CacheCoordinator
from contentguard.config.profanity_rules import load_profanity_rules
from contentguard.config.settings import Settings
from contentguard.core.errors import ContentValidationError, ModerationError
from contentguard.core.models import (
    ImageAnalysisResult,
    ModerationResult,
    TextModerationResult,
)
from contentguard.jobs.job_queue import ModerationJobQueue
from contentguard.jobs.models import ModerationJob
from contentguard.pipeline.moderation_pipeline import GENERIC_FAILURE_MESSAGE, ModerationPipeline
from contentguard.signals.signal_factory import SignalSuite, create_signal_suite

logger = logging.getLogger(__name__)


class ModerationService:
    """Owns the pipeline, its collaborators and their lifecycle.

    Args:
        pipeline: Configured moderation pipeline.
        signals: The adapters the pipeline was built with.
        job_queue: Background queue; None disables job submission.
    """

    def __init__(
        self,
        pipeline: ModerationPipeline,
        signals: SignalSuite,
        job_queue: ModerationJobQueue | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._signals = signals
        self._jobs = job_queue
        self._started = False

    @classmethod
    async def create(
        cls,
        settings: Settings | None = None,
        coordinator: CacheCoordinator | None = None,
        signals: SignalSuite | None = None,
        with_job_queue: bool = True,
    ) -> ModerationService:
        """Build every collaborator from settings and run startup()."""
        settings = settings or Settings()
        signals = signals if signals is not None else create_signal_suite(settings)
        pipeline = ModerationPipeline(
            coordinator=coordinator or create_coordinator(settings),
            signals=signals,
            settings=settings,
            profanity=ProfanityAnalyzer(load_profanity_rules(settings.profanity_rules_path)),
        )
        job_queue = (
            ModerationJobQueue.from_settings(pipeline, settings) if with_job_queue else None
        )
        service = cls(pipeline, signals, job_queue)
        await service.startup()
        return service

    @property
    def pipeline(self) -> ModerationPipeline:
        return self._pipeline

    @property
    def readiness(self) -> dict[str, bool]:
        return {name: a.is_ready for name, a in self._signals.adapters().items()}

    async def startup(self) -> None:
        if self._started:
            return
        await self._signals.initialize_all()
        if self._jobs is not None:
            await self._jobs.start()
        self._started = True
        logger.info("Moderation service started")

    async def shutdown(self) -> None:
        if self._jobs is not None:
            await self._jobs.stop()
        await self._pipeline.close()
        await self._signals.close_all()
        await self._pipeline.coordinator.close()
        self._started = False
        logger.info("Moderation service stopped")

    async def __aenter__(self) -> ModerationService:
        await self.startup()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    # --- Moderation ---

    async def moderate_text(
        self, text: str, options: dict[str, Any] | None = None
    ) -> TextModerationResult:
        return await self._pipeline.moderate_text(text, options)

    async def moderate_image(
        self, image: bytes | str, options: dict[str, Any] | None = None
    ) -> ImageAnalysisResult:
        return await self._pipeline.moderate_image(image, options)

    async def moderate_batch(self, items: list[BatchItem]) -> list[ModerationResult]:
        return await self._pipeline.moderate_batch(items)

    # --- Jobs ---

    async def submit_job(
        self,
        content: Any,
        content_type: str,
        options: dict[str, Any] | None = None,
    ) -> str:
        return await self._require_jobs().submit(content, content_type, options)

    async def wait_job(self, job_id: str, timeout_s: float | None = None) -> ModerationJob:
        return await self._require_jobs().wait(job_id, timeout_s)

    def _require_jobs(self) -> ModerationJobQueue:
        if self._jobs is None:
            raise RuntimeError("Job queue disabled for this service")
        return self._jobs


def error_response(exc: BaseException) -> tuple[int, ErrorResponse]:
    """Map any exception to (status code, caller-safe error body).

    Validation errors keep their message; everything else is reported as a
    generic moderation failure with the details left in the log.
    """
    if isinstance(exc, ContentValidationError):
        return exc.status_code, ErrorResponse(
            code=exc.code, message=exc.message, retryable=False
        )
    if isinstance(exc, ModerationError):
        return exc.status_code, ErrorResponse(
            code=exc.code, message=GENERIC_FAILURE_MESSAGE, retryable=exc.retryable
        )
    logger.error("Unhandled error at service boundary: %r", exc)
    return 500, ErrorResponse(code="MODERATION_FAILED", message=GENERIC_FAILURE_MESSAGE)
