# src/analysis/image_metadata.py - v1
"""Image format, pixel dimensions and byte size.

Format comes from the leading magic bytes; dimensions come from the
image header via Pillow, which reads the header lazily without decoding
pixel data.
"""

from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from contentguard.core.errors import ContentValidationError
from contentguard.core.models import Dimensions, ImageMetadata

logger = logging.getLogger(__name__)

_MAGIC_BYTES: tuple[tuple[bytes, str], ...] = (
    (b"\xff\xd8\xff", "jpeg"),
    (b"\x89PNG", "png"),
    (b"GIF8", "gif"),
    (b"RIFF", "webp"),
)


def detect_format(data: bytes) -> str:
    """Return jpeg, png, gif, webp or unknown."""
    for magic, name in _MAGIC_BYTES:
        if data.startswith(magic):
            return name
    return "unknown"


def read_image_metadata(data: bytes) -> ImageMetadata:
    """Read metadata for raw image bytes.

    Raises:
        ContentValidationError: If Pillow cannot identify the image.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        logger.debug("Image header unreadable: %s", e)
        raise ContentValidationError("Invalid image data") from e

    return ImageMetadata(
        dimensions=Dimensions(width=width, height=height),
        format=detect_format(data),
        size=len(data),
    )
