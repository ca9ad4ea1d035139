# src/core/retry.py - v2
"""Retry policy with exponential backoff for background work.

Used by the persistence retry of unpersisted verdicts and by the job
queue when redelivering failed moderation jobs.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from contentguard.core.errors import (
    CacheUnavailable,
    DedupTimeout,
    ModerationError,
    StoreFailure,
)

logger = logging.getLogger(__name__)


class RetryExhausted(Exception):
    """All retries exhausted for an operation."""

    def __init__(self, operation: str, error_type: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Operation '{operation}' failed after {attempts} attempts ({error_type}): {last_error}"
        )


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for a specific error type."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True


DEFAULT_RETRY_CONFIGS: dict[str, RetryConfig] = {
    "store_failure": RetryConfig(max_retries=5, base_delay_s=1.0),
    "cache_unavailable": RetryConfig(max_retries=3, base_delay_s=0.5),
    "dedup_timeout": RetryConfig(max_retries=2, base_delay_s=1.0, backoff_factor=1.0),
    "timeout": RetryConfig(max_retries=2, base_delay_s=1.0, backoff_factor=1.0),
    "retryable": RetryConfig(max_retries=3, base_delay_s=1.0),
}


def classify_error(error: Exception) -> str:
    """Classify an exception into a retry error type.

    Unknown and non-retryable errors map to ``"permanent"``, which has no
    retry configuration.
    """
    if isinstance(error, StoreFailure):
        return "store_failure"
    if isinstance(error, CacheUnavailable):
        return "cache_unavailable"
    if isinstance(error, DedupTimeout):
        return "dedup_timeout"
    if isinstance(error, ModerationError):
        return "retryable" if error.retryable else "permanent"
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return "timeout"
    return "permanent"


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "unknown",
    retry_configs: dict[str, RetryConfig] | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async function with retry logic.

    Raises:
        RetryExhausted: If all retries are exhausted or the error is permanent.
    """
    configs = retry_configs or DEFAULT_RETRY_CONFIGS
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error_type = classify_error(e)
            attempts += 1
            config = configs.get(error_type)

            if config is None or attempts > config.max_retries:
                raise RetryExhausted(operation, error_type, attempts, e) from e

            delay = compute_delay(config, attempts - 1)
            logger.warning(
                "Operation '%s' - %s (attempt %d/%d), retrying in %.1fs",
                operation, error_type, attempts, config.max_retries, delay,
            )
            await asyncio.sleep(delay)
