# src/jobs/models.py - v1
"""Job models for asynchronous moderation."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

JobStatus = Literal["queued", "running", "retrying", "succeeded", "failed"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"succeeded", "failed"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobFailure(BaseModel):
    """One failed delivery attempt."""

    attempt: int
    error_code: str
    message: str
    retryable: bool
    at: datetime = Field(default_factory=_utcnow)


class ModerationJob(BaseModel):
    """A moderation task and its delivery history."""

    job_id: str
    content_type: str
    content: Any = Field(default=None, exclude=True, repr=False)
    options: dict[str, Any] = Field(default_factory=dict)
    status: JobStatus = "queued"
    attempts: int = 0
    max_attempts: int = 3
    result: Any = None
    failures: list[JobFailure] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def last_error(self) -> JobFailure | None:
        return self.failures[-1] if self.failures else None

    def mark(self, status: JobStatus) -> None:
        self.status = status
        self.updated_at = _utcnow()
