"""
Animated GIF encoder.

Serializes an ordered sequence of paletted frames into a GIF89a stream.
Every frame is written as its own image with a local colour table and its
own graphic control extension; frames are never merged, deduplicated or
delta-encoded, so the frame count of the output always equals the frame
count of the input.

Stream layout
-------------
    "GIF89a"
    logical screen descriptor      (canvas = first frame, no global table)
    NETSCAPE2.0 application ext.   (loop count)
    comment extension              (optional)
    per frame:
        graphic control extension  (disposal=1, delay in centiseconds)
        image descriptor           (local colour table flag + size)
        local colour table         (padded to a power of two)
        LZW minimum code size + data sub-blocks (<= 255 bytes each)
    trailer 0x3B
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from gifloom.exceptions import EncodeError, NoFramesError
from gifloom.types import AnimationFrame

logger = logging.getLogger(__name__)

DEFAULT_DELAY_CS = 100

_EXTENSION_INTRODUCER = 0x21
_GRAPHIC_CONTROL_LABEL = 0xF9
_COMMENT_LABEL = 0xFE
_APPLICATION_LABEL = 0xFF
_IMAGE_SEPARATOR = 0x2C
_TRAILER = 0x3B
_DISPOSE_NONE = 1               # leave frame in place
_MAX_CODE = 4095                # 12-bit LZW code space


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class FrameDelay:
    """Per-frame timing control, in centiseconds.

    ``delays_cs`` maps a frame index to its display duration.  Frames not
    present in the mapping use ``default_cs``.  ``pause_first_cs`` /
    ``pause_last_cs`` override the first and last frames.
    """
    default_cs: int = DEFAULT_DELAY_CS
    delays_cs: dict[int, int] = field(default_factory=dict)
    pause_first_cs: int | None = None
    pause_last_cs: int | None = None

    def resolve(self, n_frames: int) -> list[int]:
        """Return a list of per-frame delays in centiseconds."""
        delays = [self.delays_cs.get(i, self.default_cs) for i in range(n_frames)]
        if self.pause_first_cs is not None and n_frames > 0:
            delays[0] = self.pause_first_cs
        if self.pause_last_cs is not None and n_frames > 0:
            delays[-1] = self.pause_last_cs
        return delays


@dataclass(frozen=True)
class GifConfig:
    """Container-level options."""
    default_delay_cs: int = DEFAULT_DELAY_CS   # used when a frame has no delay
    loop_count: int | None = 0                 # 0 = infinite, None = play once
    comment: str | None = None


# ---------------------------------------------------------------------------
# LZW compression
# ---------------------------------------------------------------------------

class _BitPacker:
    """Accumulates variable-width codes LSB-first into bytes."""

    __slots__ = ("_out", "_acc", "_nbits")

    def __init__(self) -> None:
        self._out = bytearray()
        self._acc = 0
        self._nbits = 0

    def write(self, code: int, width: int) -> None:
        self._acc |= code << self._nbits
        self._nbits += width
        while self._nbits >= 8:
            self._out.append(self._acc & 0xFF)
            self._acc >>= 8
            self._nbits -= 8

    def getvalue(self) -> bytes:
        if self._nbits:
            self._out.append(self._acc & 0xFF)
            self._acc = 0
            self._nbits = 0
        return bytes(self._out)


def lzw_compress(indices: bytes, min_code_size: int) -> bytes:
    """Compress palette indices with GIF-flavoured variable-width LZW.

    Code width grows when the next free code no longer fits, and the table
    is reset with a clear code once all 4096 codes are in use.
    """
    clear_code = 1 << min_code_size
    end_code = clear_code + 1
    packer = _BitPacker()

    width = min_code_size + 1
    next_code = end_code + 1
    table: dict[tuple[int, int], int] = {}

    packer.write(clear_code, width)
    if not indices:
        packer.write(end_code, width)
        return packer.getvalue()

    prefix = indices[0]
    for pixel in indices[1:]:
        code = table.get((prefix, pixel))
        if code is not None:
            prefix = code
            continue
        packer.write(prefix, width)
        if next_code >= (1 << width) and width < 12:
            width += 1
        if next_code >= _MAX_CODE:
            packer.write(clear_code, width)
            table.clear()
            width = min_code_size + 1
            next_code = end_code + 1
        else:
            table[(prefix, pixel)] = next_code
            next_code += 1
        prefix = pixel

    packer.write(prefix, width)
    if next_code >= (1 << width) and width < 12:
        width += 1
    packer.write(end_code, width)
    return packer.getvalue()


def _sub_blocks(data: bytes) -> bytes:
    """Split *data* into length-prefixed sub-blocks plus a terminator."""
    out = bytearray()
    for i in range(0, len(data), 255):
        chunk = data[i:i + 255]
        out.append(len(chunk))
        out.extend(chunk)
    out.append(0)
    return bytes(out)


# ---------------------------------------------------------------------------
# Block writers
# ---------------------------------------------------------------------------

def _table_bits(n_colors: int) -> int:
    """Bits needed for a colour table of *n_colors* entries (1 -- 8)."""
    return max(1, (n_colors - 1).bit_length())


def _screen_descriptor(width: int, height: int) -> bytes:
    # No global colour table; colour resolution 8 bits.
    return struct.pack("<HHBBB", width, height, 0x70, 0, 0)


def _loop_extension(loop_count: int) -> bytes:
    return (
        bytes((_EXTENSION_INTRODUCER, _APPLICATION_LABEL, 11))
        + b"NETSCAPE2.0"
        + struct.pack("<BBHB", 3, 1, loop_count, 0)
    )


def _comment_extension(comment: str) -> bytes:
    return bytes((_EXTENSION_INTRODUCER, _COMMENT_LABEL)) + _sub_blocks(
        comment.encode("utf-8")
    )


def _graphic_control(delay_cs: int) -> bytes:
    return bytes((_EXTENSION_INTRODUCER, _GRAPHIC_CONTROL_LABEL, 4)) + struct.pack(
        "<BHBB", _DISPOSE_NONE << 2, delay_cs, 0, 0
    )


def _image_block(frame: AnimationFrame) -> bytes:
    bits = _table_bits(len(frame.palette))
    table = bytearray()
    for r, g, b in frame.palette:
        table.extend((r, g, b))
    table.extend(b"\x00" * (3 * ((1 << bits) - len(frame.palette))))

    descriptor = bytes((_IMAGE_SEPARATOR,)) + struct.pack(
        "<HHHHB", 0, 0, frame.width, frame.height, 0x80 | (bits - 1)
    )
    min_code_size = max(2, bits)
    compressed = lzw_compress(frame.palette_indices.tobytes(), min_code_size)
    return descriptor + bytes(table) + bytes((min_code_size,)) + _sub_blocks(compressed)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _check_frames(frames: Sequence[AnimationFrame], delays: list[int]) -> None:
    width, height = frames[0].width, frames[0].height
    if not (0 < width <= 0xFFFF and 0 < height <= 0xFFFF):
        raise EncodeError(f"Frame 0 has unsupported size {width}x{height}.")
    for i, frame in enumerate(frames):
        if frame.palette_indices.ndim != 2:
            raise EncodeError(f"Frame {i}: palette indices must be a 2-D grid.")
        if (frame.width, frame.height) != (width, height):
            raise EncodeError(
                f"Frame {i}: size {frame.width}x{frame.height} != "
                f"canvas {width}x{height}."
            )
        if not 1 <= len(frame.palette) <= 256:
            raise EncodeError(
                f"Frame {i}: palette has {len(frame.palette)} entries (1 -- 256)."
            )
        if int(np.max(frame.palette_indices)) >= len(frame.palette):
            raise EncodeError(f"Frame {i}: palette index out of range.")
        if not 0 <= delays[i] <= 0xFFFF:
            raise EncodeError(f"Frame {i}: delay {delays[i]} cs out of range.")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def encode_animation(
    frames: Sequence[AnimationFrame],
    config: GifConfig = GifConfig(),
) -> bytes:
    """Encode *frames*, in order, into a single animated GIF.

    Raises
    ------
    NoFramesError
        If *frames* is empty.
    EncodeError
        If frames differ in size or carry inconsistent palettes/delays.
    """
    if not frames:
        raise NoFramesError("An animation needs at least one frame.")

    delays = [
        config.default_delay_cs if f.delay_cs is None else f.delay_cs
        for f in frames
    ]
    _check_frames(frames, delays)

    out = bytearray(b"GIF89a")
    out += _screen_descriptor(frames[0].width, frames[0].height)
    if config.loop_count is not None:
        out += _loop_extension(config.loop_count)
    if config.comment:
        out += _comment_extension(config.comment)
    for frame, delay in zip(frames, delays):
        out += _graphic_control(delay)
        out += _image_block(frame)
    out.append(_TRAILER)

    logger.info(
        "Encoded %d frames (%dx%d) into %d bytes",
        len(frames), frames[0].width, frames[0].height, len(out),
    )
    return bytes(out)
