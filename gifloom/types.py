"""
Core data structures shared by the ingest and animation pipelines.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

import numpy as np


class ErrorKind(enum.Enum):
    """Stable, client-visible failure categories."""
    EMPTY_INPUT = "EmptyInput"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    DECODE_FAILED = "DecodeFailed"
    EMPTY_FRAME = "EmptyFrame"
    NO_FRAMES = "NoFrames"
    ENCODE_FAILED = "EncodeFailed"
    STORE_WRITE_FAILED = "StoreWriteFailed"
    STORE_READ_FAILED = "StoreReadFailed"
    ARCHIVE_FAILED = "ArchiveFailed"
    NOT_FOUND = "NotFound"
    INVALID_CONFIG = "InvalidConfig"


class IngestPolicy(enum.Enum):
    """What to do when a single upload in a batch fails."""
    ABORT = "abort"       # First failure aborts the batch.
    COLLECT = "collect"   # Report every item, accepted or rejected.


@dataclass(frozen=True)
class UploadTask:
    """A single file submitted in an upload batch."""
    source_name: str
    raw_bytes: bytes


@dataclass(frozen=True)
class Accepted:
    """An upload that was validated and written to the blob store."""
    source_name: str
    stored_url: str
    key: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    """An upload that failed validation or could not be stored."""
    source_name: str
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False


ValidationResult = Union[Accepted, Rejected]


@dataclass(frozen=True, eq=False)
class ImageAsset:
    """Decoded image: ``pixels`` is a uint8 array of shape (height, width, 4)."""
    width: int
    height: int
    pixels: np.ndarray


@dataclass(frozen=True, eq=False)
class AnimationFrame:
    """One paletted frame of an animation.

    ``palette_indices`` is a uint8 array of shape (height, width) whose
    values index into ``palette``.  ``delay_cs`` stays ``None`` until the
    pipeline assigns frame timing.
    """
    palette_indices: np.ndarray
    palette: tuple[tuple[int, int, int], ...]
    delay_cs: int | None = None

    @property
    def width(self) -> int:
        return int(self.palette_indices.shape[1])

    @property
    def height(self) -> int:
        return int(self.palette_indices.shape[0])


@dataclass(frozen=True)
class AnimationResult:
    """A stored animation and where to get it."""
    animation_id: str
    encoded_bytes: bytes
    stored_url: str
    download_path: str
    frame_count: int
    archive_location: str | None = None
