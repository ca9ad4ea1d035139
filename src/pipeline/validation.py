# src/pipeline/validation.py - v2
"""Input validation, run before fingerprinting and before any cache access.

Text must be a non-empty string within the configured length. Images may
arrive as raw bytes or a base64 string, must fit the configured byte
limit and must be readable by Pillow.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from contentguard.analysis.image_metadata import read_image_metadata
from contentguard.core.errors import ContentValidationError, UnsupportedContentTypeError
from contentguard.core.models import SUPPORTED_CONTENT_TYPES, ImageMetadata

DEFAULT_MAX_TEXT_LENGTH = 10_000
DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class ValidatedContent:
    """Normalized content ready for fingerprinting."""

    content_type: str
    data: str | bytes
    image_metadata: ImageMetadata | None = None


def check_content_type(content_type: object) -> str:
    if content_type not in SUPPORTED_CONTENT_TYPES:
        raise UnsupportedContentTypeError(content_type)
    return content_type  # type: ignore[return-value]


def validate_text(text: object, max_length: int = DEFAULT_MAX_TEXT_LENGTH) -> str:
    if not isinstance(text, str):
        raise ContentValidationError("Text content must be a string")
    if not text.strip():
        raise ContentValidationError("Text content must not be empty")
    if len(text) > max_length:
        raise ContentValidationError(
            f"Text content exceeds {max_length} characters ({len(text)})"
        )
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ContentValidationError("Text content is not valid UTF-8") from e
    return text


def decode_image(image: object) -> bytes:
    """Raw bytes as-is; strings are decoded as base64."""
    if isinstance(image, (bytes, bytearray, memoryview)):
        return bytes(image)
    if isinstance(image, str):
        try:
            return base64.b64decode(image, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ContentValidationError("Image string is not valid base64") from e
    raise ContentValidationError("Image content must be bytes or a base64 string")


def validate_image(
    image: object, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES
) -> tuple[bytes, ImageMetadata]:
    data = decode_image(image)
    if not data:
        raise ContentValidationError("Image content must not be empty")
    if len(data) > max_bytes:
        raise ContentValidationError(
            f"Image exceeds {max_bytes} bytes ({len(data)})"
        )
    return data, read_image_metadata(data)


def validate_content(
    content: object,
    content_type: object,
    max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
) -> ValidatedContent:
    """Validate and normalize one item.

    Raises:
        UnsupportedContentTypeError: If content_type is not text or image.
        ContentValidationError: If the content is malformed or oversized.
    """
    content_type = check_content_type(content_type)
    if content_type == "text":
        return ValidatedContent("text", validate_text(content, max_text_length))
    data, metadata = validate_image(content, max_image_bytes)
    return ValidatedContent("image", data, metadata)
