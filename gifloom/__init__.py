"""
gifloom -- Concurrent image ingestion and animated GIF assembly.

Uploaded images are validated and stored as blobs in parallel; an ordered
subset of stored images can later be decoded, colour-quantized and encoded
into a single animated GIF that is itself stored and downloadable.
"""

__version__ = "0.1.0"

from gifloom.types import (
    AnimationFrame,
    AnimationResult,
    ErrorKind,
    ImageAsset,
    IngestPolicy,
    UploadTask,
)

__all__ = [
    "AnimationFrame",
    "AnimationResult",
    "ErrorKind",
    "ImageAsset",
    "IngestPolicy",
    "UploadTask",
]
