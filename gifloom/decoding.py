"""
Image decoding: raw bytes of a supported format -> RGBA pixel grid.
"""

from __future__ import annotations

import io
import logging
from typing import Sequence

import numpy as np
from PIL import Image, UnidentifiedImageError

from gifloom.exceptions import DecodeFailedError
from gifloom.types import ImageAsset

logger = logging.getLogger(__name__)

#: Pillow format names matching the upload allow-list.
SUPPORTED_FORMATS: tuple[str, ...] = ("PNG", "JPEG", "GIF")


def decode_image(
    data: bytes,
    formats: Sequence[str] | None = SUPPORTED_FORMATS,
) -> ImageAsset:
    """Decode *data* into an :class:`ImageAsset`.

    Animated inputs contribute their first frame.  Anything Pillow cannot
    identify or fully load (unknown format, truncated stream, decompression
    bomb) raises :class:`DecodeFailedError`.
    """
    if not data:
        raise DecodeFailedError("Cannot decode an empty byte stream.")
    try:
        with Image.open(io.BytesIO(data), formats=formats) as img:
            img.seek(0)
            img.load()
            rgba = img.convert("RGBA")
    except UnidentifiedImageError as exc:
        raise DecodeFailedError(f"Unrecognized image data: {exc}") from exc
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeFailedError(f"Corrupt image data: {exc}") from exc

    pixels = np.asarray(rgba, dtype=np.uint8).copy()
    logger.debug("Decoded %dx%d image (%d bytes)", rgba.width, rgba.height, len(data))
    return ImageAsset(width=rgba.width, height=rgba.height, pixels=pixels)
