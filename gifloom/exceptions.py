"""
Custom exception hierarchy for gifloom.

All gifloom exceptions inherit from GifloomError so callers can catch
the entire family with a single except clause.  Each class carries a
stable ``kind`` used for client-visible error reporting.
"""

from __future__ import annotations

from gifloom.types import AnimationResult, ErrorKind


class GifloomError(Exception):
    """Base exception for all gifloom errors."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EmptyInputError(GifloomError):
    """Raised when a batch or URL list is empty."""
    kind = ErrorKind.EMPTY_INPUT


class UnsupportedFormatError(GifloomError):
    """Raised when an upload's extension is not on the allow-list."""
    kind = ErrorKind.UNSUPPORTED_FORMAT

    def __init__(self, message: str, source_name: str = "") -> None:
        super().__init__(message)
        self.source_name = source_name


class DecodeFailedError(GifloomError):
    """Raised when a byte stream cannot be decoded as an image."""
    kind = ErrorKind.DECODE_FAILED


class EmptyFrameError(GifloomError):
    """Raised when a frame has zero width or height."""
    kind = ErrorKind.EMPTY_FRAME


class NoFramesError(GifloomError):
    """Raised when the encoder is asked to encode nothing."""
    kind = ErrorKind.NO_FRAMES


class EncodeError(GifloomError):
    """Raised when frames cannot be serialized into one container."""
    kind = ErrorKind.ENCODE_FAILED


class StoreWriteError(GifloomError):
    """Raised when the blob store rejects a write."""
    kind = ErrorKind.STORE_WRITE_FAILED


class StoreReadError(GifloomError):
    """Raised when a blob or remote image cannot be read."""
    kind = ErrorKind.STORE_READ_FAILED


class NotFoundError(GifloomError):
    """Raised when a requested artifact does not exist."""
    kind = ErrorKind.NOT_FOUND


class BlobNotFoundError(NotFoundError):
    """Raised by a blob store when a key is absent."""

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(message)
        self.key = key


class ArchiveFailedError(GifloomError):
    """Raised when the secondary archive write fails.

    The primary store write has already succeeded; ``result`` is the
    stored animation so callers can still report it.
    """
    kind = ErrorKind.ARCHIVE_FAILED

    def __init__(self, message: str, result: AnimationResult) -> None:
        super().__init__(message)
        self.result = result


class ConfigError(GifloomError):
    """Raised when service configuration is missing or invalid."""
    kind = ErrorKind.INVALID_CONFIG
