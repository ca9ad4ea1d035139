# src/pipeline/moderation_pipeline.py - v1
"""Moderation pipeline: top-level orchestrator for one piece of content.

Per request:
  1. Validate (before fingerprinting, no cache interaction on failure)
  2. Fingerprint
  3. Two-tier lookup; a hit returns immediately
  4. Acquire the compute slot; a concurrent duplicate waits for the
     winner's result instead of analyzing again
  5. Fan out local analyzers and remote signals, aggregate the verdict
  6. Commit (first writer wins); a durable failure still returns the
     verdict and schedules a background persistence retry
  7. Resolve the slot for waiters and return

Per fingerprint the state goes Unseen -> CacheHit | Computing -> Computed.
Computing lives only in this process.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Iterable

from contentguard.analysis.aggregator import aggregate_image, aggregate_text
from contentguard.analysis.profanity import ProfanityAnalyzer
from contentguard.analysis.spam import SpamAnalyzer, SpamConfig
from contentguard.cache.fingerprint import compute_fingerprint
from contentguard.core.errors import ModerationError, ModerationFailed, StoreFailure
from contentguard.core.models import (
    ContentFingerprint,
    ImageAnalysisResult,
    ModerationResult,
    TextModerationResult,
)
from contentguard.core.retry import DEFAULT_RETRY_CONFIGS, RetryConfig, RetryExhausted, with_retry
from contentguard.logging.context import set_moderation_context
from contentguard.pipeline.fanout import SignalCall, SignalFanout
from contentguard.pipeline.validation import ValidatedContent, check_content_type, validate_content
from contentguard.signals.signal_factory import SignalSuite

if TYPE_CHECKING:
    from contentguard.cache.coordinator import CacheCoordinator
    from contentguard.config.settings import Settings

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Content moderation failed"


class ModerationPipeline:
    """Orchestrates lookup, dedup, analysis and commit.

    Usage:
        pipeline = ModerationPipeline(coordinator, signals, settings=settings)
        result = await pipeline.moderate_text("hello there")

    Args:
        coordinator: Cache/store coordinator (owns the in-flight guard).
        signals: Remote signal adapters, already initialized.
        settings: Limits, timeouts and analyzer configuration. Defaults apply when None.
        profanity: Profanity analyzer override.
        spam: Spam analyzer override.
        retry_configs: Backoff policy for background persistence retries.
    """

    def __init__(
        self,
        coordinator: CacheCoordinator,
        signals: SignalSuite | None = None,
        settings: Settings | None = None,
        profanity: ProfanityAnalyzer | None = None,
        spam: SpamAnalyzer | None = None,
        retry_configs: dict[str, RetryConfig] | None = None,
    ) -> None:
        if settings is None:
            from contentguard.config.settings import Settings

            settings = Settings(store_backend="memory")
        self._settings = settings
        self._coordinator = coordinator
        self._signals = signals or SignalSuite()
        self._profanity = profanity or ProfanityAnalyzer()
        self._spam = spam or SpamAnalyzer(SpamConfig.from_settings(settings))
        self._fanout = SignalFanout(
            timeout_s=settings.signal_timeout_s,
            require_all=settings.require_all_signals,
        )
        self._retry_configs = retry_configs or DEFAULT_RETRY_CONFIGS
        self._retry_tasks: set[asyncio.Task] = set()

    @property
    def coordinator(self) -> CacheCoordinator:
        return self._coordinator

    @property
    def pending_persistence(self) -> int:
        """Background persistence retries still running."""
        return len(self._retry_tasks)

    # --- Entry points ---

    async def moderate(
        self,
        content: Any,
        content_type: str,
        options: dict[str, Any] | None = None,
    ) -> ModerationResult:
        """Moderate one item, memoized by fingerprint.

        Raises:
            ContentValidationError: If the input is malformed, oversized or of
                an unsupported type.
            DedupTimeout: If waiting on a concurrent identical request timed out.
            ModerationFailed: For any other internal failure.
        """
        validated = validate_content(
            content,
            content_type,
            max_text_length=self._settings.max_text_length,
            max_image_bytes=self._settings.max_image_bytes,
        )
        fingerprint = compute_fingerprint(validated.data, validated.content_type)
        set_moderation_context(fingerprint.hex, fingerprint.content_type)

        try:
            return await self._moderate_fingerprint(fingerprint, validated, options)
        except ModerationError:
            raise
        except Exception as e:
            logger.exception("Moderation failed for %s", fingerprint.hex[:12])
            raise ModerationFailed(GENERIC_FAILURE_MESSAGE) from e

    async def moderate_text(
        self, text: str, options: dict[str, Any] | None = None
    ) -> TextModerationResult:
        return await self.moderate(text, "text", options)  # type: ignore[return-value]

    async def moderate_image(
        self, image: bytes | str, options: dict[str, Any] | None = None
    ) -> ImageAnalysisResult:
        return await self.moderate(image, "image", options)  # type: ignore[return-value]

    async def moderate_batch(self, items: Iterable[Any]) -> list[ModerationResult]:
        """Moderate a heterogeneous batch of ``{type, content}`` items.

        Every type is checked before any item is analyzed, so an unsupported
        type fails the batch without side effects. Items then run
        concurrently; the first failure (in item order) fails the batch once
        all items have settled.
        """
        pairs = [_item_fields(item) for item in items]
        for content_type, _ in pairs:
            check_content_type(content_type)

        outcomes = await asyncio.gather(
            *(self.moderate(content, content_type) for content_type, content in pairs),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return list(outcomes)  # type: ignore[arg-type]

    async def close(self) -> None:
        """Cancel outstanding persistence retries."""
        if self._retry_tasks:
            logger.warning(
                "Cancelling %d pending persistence retr%s",
                len(self._retry_tasks), "y" if len(self._retry_tasks) == 1 else "ies",
            )
            for task in list(self._retry_tasks):
                task.cancel()
            await asyncio.gather(*self._retry_tasks, return_exceptions=True)
            self._retry_tasks.clear()

    # --- Internals ---

    async def _moderate_fingerprint(
        self,
        fingerprint: ContentFingerprint,
        validated: ValidatedContent,
        options: dict[str, Any] | None,
    ) -> ModerationResult:
        lookup = await self._coordinator.lookup(fingerprint)
        if lookup.found:
            return lookup.result  # type: ignore[return-value]

        async with self._coordinator.compute_slot(fingerprint) as slot:
            if not slot.exclusive:
                logger.info("Waiting for in-flight analysis of %s", slot.key)
                return await slot.wait(self._settings.dedup_wait_timeout_s)

            # A previous winner may have committed after our lookup.
            lookup = await self._coordinator.lookup(fingerprint)
            if lookup.found:
                slot.resolve(lookup.result)
                return lookup.result  # type: ignore[return-value]

            result = await self._analyze(validated)
            result = await self._persist(fingerprint, result, options)
            slot.resolve(result)
            return result

    async def _analyze(self, validated: ValidatedContent) -> ModerationResult:
        if validated.content_type == "text":
            return await self._analyze_text(validated.data)  # type: ignore[arg-type]
        return await self._analyze_image(validated)

    async def _analyze_text(self, text: str) -> TextModerationResult:
        s = self._signals
        profanity = self._profanity.analyze(text)
        spam = self._spam.analyze(text)
        fan = await self._fanout.run({
            "sentiment": SignalCall(s.sentiment, lambda: s.sentiment.analyze(text)),
            "content_safety": SignalCall(
                s.content_safety, lambda: s.content_safety.analyze(text)
            ),
            "language": SignalCall(s.language, lambda: s.language.detect(text)),
        })
        return aggregate_text(
            profanity=profanity,
            spam=spam,
            sentiment=fan.get("sentiment"),
            language=fan.get("language"),
            content_safety=fan.get("content_safety"),
            missing_signals=fan.missing,
        )

    async def _analyze_image(self, validated: ValidatedContent) -> ImageAnalysisResult:
        image = self._signals.image
        data: bytes = validated.data  # type: ignore[assignment]
        fan = await self._fanout.run({
            "nsfw": SignalCall(image, lambda: image.nsfw(data)),
            "objects": SignalCall(image, lambda: image.detect_objects(data)),
            "faces": SignalCall(image, lambda: image.detect_faces(data)),
        })
        return aggregate_image(
            metadata=validated.image_metadata,  # type: ignore[arg-type]
            nsfw=fan.get("nsfw"),
            objects=fan.get("objects"),
            faces=fan.get("faces"),
            confidence_floor=self._settings.detection_confidence_floor,
            missing_signals=fan.missing,
        )

    async def _persist(
        self,
        fingerprint: ContentFingerprint,
        result: ModerationResult,
        options: dict[str, Any] | None,
    ) -> ModerationResult:
        """Commit and return the authoritative verdict.

        On StoreFailure the freshly computed verdict is returned unpersisted.
        """
        try:
            outcome = await self._coordinator.commit(fingerprint, result, options)
        except StoreFailure as e:
            logger.error(
                "Verdict for %s not persisted, scheduling retry: %s",
                fingerprint.hex[:12], e,
            )
            self._schedule_persistence_retry(fingerprint, result, options)
            return result
        return outcome.result

    def _schedule_persistence_retry(
        self,
        fingerprint: ContentFingerprint,
        result: ModerationResult,
        options: dict[str, Any] | None,
    ) -> None:
        task = asyncio.create_task(
            with_retry(
                self._coordinator.commit,
                fingerprint,
                result,
                options,
                operation=f"persist:{fingerprint.hex[:12]}",
                retry_configs=self._retry_configs,
            )
        )
        self._retry_tasks.add(task)
        task.add_done_callback(self._on_retry_done)

    def _on_retry_done(self, task: asyncio.Task) -> None:
        self._retry_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, RetryExhausted):
            logger.error("Verdict left unpersisted: %s", error)
        elif error is not None:
            logger.error("Persistence retry crashed: %s", error)
        else:
            logger.info("Verdict persisted on retry (%s)", task.result().status)


def _item_fields(item: Any) -> tuple[Any, Any]:
    """(type, content) from a mapping or an object with those attributes."""
    if isinstance(item, Mapping):
        return item.get("type"), item.get("content")
    return getattr(item, "type", None), getattr(item, "content", None)
