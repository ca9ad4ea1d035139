# src/cache/fingerprint.py - v3
"""Content fingerprinting: SHA-256 over the canonical byte form of the input.

Text is hashed over its UTF-8 bytes. Images are hashed over the base64
encoding of their raw bytes; base64 request bodies are decoded before
they get here. Both content types share one hash
function and one key space; the content type is carried next to the
digest so the two never alias.
"""

from __future__ import annotations

import base64
import hashlib

from contentguard.core.errors import UnsupportedContentTypeError
from contentguard.core.models import ContentFingerprint

DEFAULT_KEY_PREFIX = "moderation"


def canonical_bytes(content: str | bytes, content_type: str) -> bytes:
    """Return the bytes that identify a piece of content.

    Raises:
        UnsupportedContentTypeError: If content_type is not text or image.
    """
    if content_type == "text":
        if isinstance(content, bytes):
            return content
        return content.encode("utf-8")
    if content_type == "image":
        if not isinstance(content, bytes):
            raise TypeError("image content must be raw bytes")
        return base64.b64encode(content)
    raise UnsupportedContentTypeError(content_type)


def compute_fingerprint(content: str | bytes, content_type: str) -> ContentFingerprint:
    """Compute the content fingerprint. Pure and deterministic.

    Args:
        content: Text (str) or raw image bytes.
        content_type: "text" or "image".

    Returns:
        ContentFingerprint with a 64-char hex SHA-256 digest.
    """
    digest = hashlib.sha256(canonical_bytes(content, content_type)).hexdigest()
    return ContentFingerprint(digest=digest, content_type=content_type)  # type: ignore[arg-type]


def cache_key(fingerprint: ContentFingerprint, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Ephemeral-tier key: ``<prefix>:<content_type>:<hex digest>``."""
    return f"{prefix}:{fingerprint.content_type}:{fingerprint.hex}"
