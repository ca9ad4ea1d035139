# src/logging/context.py - v2
"""Contextual logging support: attach fingerprint, content type, job and signal to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per moderation request.
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_content_type: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "content_type", default=None
)
_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_signal: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "signal", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    fingerprint: str | None = None
    content_type: str | None = None
    job_id: str | None = None
    signal: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        fingerprint=_fingerprint.get(),
        content_type=_content_type.get(),
        job_id=_job_id.get(),
        signal=_signal.get(),
    )


def set_moderation_context(fingerprint: str, content_type: str) -> None:
    """Set request-level context (called once per moderate() call)."""
    _fingerprint.set(fingerprint)
    _content_type.set(content_type)


def set_job_context(job_id: str | None) -> None:
    """Set job-level context (called per job attempt)."""
    _job_id.set(job_id)


def set_signal_context(signal: str | None) -> None:
    """Set signal-level context (called inside each fan-out branch)."""
    _signal.set(signal)


def clear_context() -> None:
    """Reset all context variables."""
    _fingerprint.set(None)
    _content_type.set(None)
    _job_id.set(None)
    _signal.set(None)
