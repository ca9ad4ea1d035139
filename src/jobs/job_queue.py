# src/jobs/job_queue.py - v2
"""In-process job queue for background and batch moderation.

Delivery is at-least-once: a job whose attempt fails for any reason other
than invalid input is redelivered after an exponential backoff until it succeeds or
runs out of attempts, at which point it lands in the dead-letter list.
Redelivering a job that already produced a verdict is harmless because
moderate() is idempotent per fingerprint.

Finished jobs drop their content and stay queryable until `retention`
newer jobs have finished, after which they are evicted.

Usage:
    queue = ModerationJobQueue(pipeline, workers=4)
    await queue.start()
    job_id = await queue.submit("some text", "text")
    job = await queue.wait(job_id)
    await queue.stop()
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from typing import TYPE_CHECKING, Any

from contentguard.core.errors import ContentValidationError
from contentguard.core.retry import RetryConfig, compute_delay
from contentguard.jobs.models import JobFailure, ModerationJob
from contentguard.logging.context import set_job_context
from contentguard.pipeline.validation import check_content_type

if TYPE_CHECKING:
    from contentguard.config.settings import Settings
    from contentguard.pipeline.moderation_pipeline import ModerationPipeline

logger = logging.getLogger(__name__)


class UnknownJobError(KeyError):
    """Raised when a job id was never submitted to this queue."""


class ModerationJobQueue:
    """asyncio.Queue-backed worker pool around a ModerationPipeline.

    Args:
        pipeline: Unit of work for every job.
        workers: Number of concurrent worker tasks.
        max_attempts: Deliveries per job before dead-lettering.
        retry_base_delay_s: First redelivery delay; doubles per attempt.
        retention: Finished jobs (and dead letters) kept for lookup.
    """

    def __init__(
        self,
        pipeline: ModerationPipeline,
        workers: int = 4,
        max_attempts: int = 3,
        retry_base_delay_s: float = 1.0,
        retention: int = 1000,
    ) -> None:
        if workers <= 0:
            raise ValueError("workers must be > 0")
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        if retention <= 0:
            raise ValueError("retention must be > 0")
        self._pipeline = pipeline
        self._worker_count = workers
        self._max_attempts = max_attempts
        self._backoff = RetryConfig(
            max_retries=max_attempts - 1, base_delay_s=retry_base_delay_s
        )
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._jobs: dict[str, ModerationJob] = {}
        self._done: dict[str, asyncio.Event] = {}
        self._retention = retention
        self._finished: deque[str] = deque()
        self._dead_letters: deque[ModerationJob] = deque(maxlen=retention)
        self._workers: list[asyncio.Task] = []
        self._redeliveries: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls, pipeline: ModerationPipeline, settings: Settings
    ) -> ModerationJobQueue:
        return cls(
            pipeline,
            workers=settings.job_queue_workers,
            max_attempts=settings.job_max_attempts,
            retry_base_delay_s=settings.job_retry_base_delay_s,
            retention=settings.job_retention,
        )

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    @property
    def dead_letters(self) -> list[ModerationJob]:
        return list(self._dead_letters)

    # --- Lifecycle ---

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"moderation-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("Job queue started with %d workers", self._worker_count)

    async def stop(self, drain: bool = True) -> None:
        """Stop workers, optionally after every submitted job settles."""
        if drain and self._workers:
            await self.drain()
        tasks = [*self._workers, *self._redeliveries]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._workers = []
        self._redeliveries.clear()
        logger.info("Job queue stopped")

    async def drain(self) -> None:
        """Wait until every submitted job is succeeded or failed."""
        pending = [
            self._done[job_id].wait()
            for job_id, job in self._jobs.items()
            if not job.is_terminal
        ]
        if pending:
            await asyncio.gather(*pending)

    # --- Jobs ---

    async def submit(
        self,
        content: Any,
        content_type: str,
        options: dict[str, Any] | None = None,
    ) -> str:
        """Enqueue one item and return its job id.

        Raises:
            UnsupportedContentTypeError: If content_type is not text or image.
        """
        check_content_type(content_type)
        job = ModerationJob(
            job_id=uuid.uuid4().hex,
            content_type=content_type,
            content=content,
            options=options or {},
            max_attempts=self._max_attempts,
        )
        self._jobs[job.job_id] = job
        self._done[job.job_id] = asyncio.Event()
        await self._queue.put(job.job_id)
        logger.debug("Job %s queued (%s)", job.job_id, content_type)
        return job.job_id

    def get(self, job_id: str) -> ModerationJob:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise UnknownJobError(job_id) from None

    async def wait(self, job_id: str, timeout_s: float | None = None) -> ModerationJob:
        """Wait for a job to reach a terminal status.

        Raises:
            UnknownJobError: If the job id is unknown or already evicted.
            asyncio.TimeoutError: If the job is still pending after timeout_s.
        """
        job = self.get(job_id)
        done = self._done[job_id]
        await asyncio.wait_for(done.wait(), timeout_s)
        return job

    # --- Workers ---

    async def _worker(self, index: int) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                await self._process(self._jobs[job_id])
            except Exception:
                logger.exception("Worker %d crashed on job %s", index, job_id)
            finally:
                self._queue.task_done()

    async def _process(self, job: ModerationJob) -> None:
        set_job_context(job.job_id)
        job.attempts += 1
        job.mark("running")
        try:
            job.result = await self._pipeline.moderate(
                job.content, job.content_type, job.options or None
            )
        except Exception as e:
            self._record_failure(job, e)
        else:
            job.mark("succeeded")
            self._finish(job)
            logger.info("Job %s succeeded on attempt %d", job.job_id, job.attempts)
        finally:
            set_job_context(None)

    def _record_failure(self, job: ModerationJob, error: Exception) -> None:
        # Malformed input never succeeds on redelivery; everything else may.
        retryable = not isinstance(error, ContentValidationError)
        job.failures.append(
            JobFailure(
                attempt=job.attempts,
                error_code=getattr(error, "code", type(error).__name__),
                message=str(error),
                retryable=retryable,
            )
        )
        logger.warning(
            "Job %s attempt %d/%d failed: %s",
            job.job_id, job.attempts, job.max_attempts, error,
        )

        if retryable and job.attempts < job.max_attempts:
            delay = compute_delay(self._backoff, job.attempts - 1)
            job.mark("retrying")
            task = asyncio.create_task(self._redeliver(job.job_id, delay))
            self._redeliveries.add(task)
            task.add_done_callback(self._redeliveries.discard)
            logger.info("Job %s redelivery in %.2fs", job.job_id, delay)
            return

        job.mark("failed")
        self._dead_letters.append(job)
        self._finish(job)
        logger.error(
            "Job %s dead-lettered after %d attempt(s): %s",
            job.job_id, job.attempts, error,
        )

    async def _redeliver(self, job_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._queue.put(job_id)

    def _finish(self, job: ModerationJob) -> None:
        job.content = None
        self._done[job.job_id].set()
        self._finished.append(job.job_id)
        while len(self._finished) > self._retention:
            evicted = self._finished.popleft()
            self._jobs.pop(evicted, None)
            self._done.pop(evicted, None)
