# src/core/errors.py - v1
"""Moderation error taxonomy.

Every error carries a stable ``code``, a transport-level ``status_code``
and whether the caller may retry. Backends translate driver exceptions
into these types at their own boundary.
"""

from __future__ import annotations


class ModerationError(Exception):
    """Base class for all moderation errors."""

    code = "MODERATION_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, *, retryable: bool | None = None) -> None:
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable


class ContentValidationError(ModerationError):
    """Malformed, empty or oversized input. Raised before fingerprinting."""

    code = "VALIDATION_ERROR"
    status_code = 400


class UnsupportedContentTypeError(ContentValidationError):
    """Content type other than text or image."""

    code = "UNSUPPORTED_CONTENT_TYPE"

    def __init__(self, content_type: object) -> None:
        super().__init__(f"Unsupported content type: {content_type!r}")
        self.content_type = content_type


class AdapterFailure(ModerationError):
    """One remote signal call failed, timed out or was not ready."""

    code = "ADAPTER_FAILURE"

    def __init__(self, signal: str, reason: str) -> None:
        super().__init__(f"Signal '{signal}' failed: {reason}")
        self.signal = signal
        self.reason = reason


class StoreFailure(ModerationError):
    """The durable tier could not be read or written."""

    code = "STORE_FAILURE"
    retryable = True


class CacheUnavailable(ModerationError):
    """The ephemeral tier is down. Callers degrade to durable-only."""

    code = "CACHE_UNAVAILABLE"
    retryable = True


class DedupTimeout(ModerationError):
    """A waiter on an in-flight computation gave up."""

    code = "DEDUP_TIMEOUT"
    status_code = 503
    retryable = True

    def __init__(self, key: str, timeout_s: float) -> None:
        super().__init__(
            f"Timed out after {timeout_s:.1f}s waiting for in-flight analysis of {key}"
        )
        self.key = key
        self.timeout_s = timeout_s


class ModerationFailed(ModerationError):
    """Generic internal failure surfaced to callers without adapter details."""

    code = "MODERATION_FAILED"
    status_code = 500
