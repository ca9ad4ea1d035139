# src/api/models.py - v1
"""Service-boundary models: request bodies and the error envelope."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TextRequest(BaseModel):
    text: str


class ImageRequest(BaseModel):
    """Raw bytes, or a base64 string when the body is JSON."""

    image: bytes | str


class BatchItem(BaseModel):
    """One heterogeneous batch entry. ``type`` is checked by the pipeline."""

    type: str
    content: bytes | str


class BatchRequest(BaseModel):
    items: list[BatchItem] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """What callers see on failure. Never carries adapter internals."""

    code: str
    message: str
    retryable: bool = False
