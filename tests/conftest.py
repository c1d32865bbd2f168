"""
Shared fixtures for the gifloom test suite.
"""

from __future__ import annotations

import io
import random
import threading
import time
from typing import Callable

import pytest
from PIL import Image

from gifloom.exceptions import BlobNotFoundError, StoreWriteError
from gifloom.storage import ArchiveStore, BlobStore, LocalBlobStore


def image_bytes(
    color: tuple[int, ...] = (255, 0, 0),
    size: tuple[int, int] = (10, 10),
    fmt: str = "PNG",
) -> bytes:
    """Encode a solid-colour image in memory."""
    mode = "RGBA" if len(color) == 4 else "RGB"
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


class MemoryBlobStore(BlobStore):
    """Thread-safe in-memory store with optional latency and failures."""

    name = "memory"

    def __init__(
        self,
        latency: Callable[[], float] | None = None,
        fail_put: Callable[[str, bytes], bool] | None = None,
        put_error: type[Exception] = StoreWriteError,
    ) -> None:
        self.blobs: dict[str, bytes] = {}
        self.latency = latency
        self.fail_put = fail_put
        self.put_error = put_error
        self.put_calls = 0
        self.get_calls = 0
        self._lock = threading.Lock()

    def url_for(self, key: str) -> str:
        return f"mem://blobs/{key}"

    def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        with self._lock:
            self.put_calls += 1
        if self.latency is not None:
            time.sleep(self.latency())
        if self.fail_put is not None and self.fail_put(key, data):
            raise self.put_error(f"simulated failure writing {key}")
        with self._lock:
            self.blobs[key] = data
        return self.url_for(key)

    def get(self, key: str) -> bytes:
        with self._lock:
            self.get_calls += 1
        if self.latency is not None:
            time.sleep(self.latency())
        with self._lock:
            try:
                return self.blobs[key]
            except KeyError:
                raise BlobNotFoundError(f"missing {key}", key=key) from None

    def seed(self, data: bytes, key: str) -> str:
        """Store *data* directly, bypassing latency and failure hooks."""
        with self._lock:
            self.blobs[key] = data
        return self.url_for(key)


class MemoryArchive(ArchiveStore):
    name = "memory"

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.items: dict[str, bytes] = {}

    def archive(self, name: str, data: bytes) -> str:
        if self.fail:
            raise OSError("archive volume unavailable")
        self.items[name] = data
        return f"archive://{name}"


@pytest.fixture
def red_png() -> bytes:
    return image_bytes((255, 0, 0))


@pytest.fixture
def blue_png() -> bytes:
    return image_bytes((0, 0, 255))


@pytest.fixture
def green_jpeg() -> bytes:
    return image_bytes((0, 255, 0), fmt="JPEG")


@pytest.fixture
def memory_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def jittery_store() -> MemoryBlobStore:
    """Store whose reads and writes complete in random order."""
    rng = random.Random(1234)
    lock = threading.Lock()

    def latency() -> float:
        with lock:
            return rng.uniform(0.0, 0.02)

    return MemoryBlobStore(latency=latency)


@pytest.fixture
def local_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "blobs", base_url="http://blobs.test/")


@pytest.fixture
def memory_archive() -> MemoryArchive:
    return MemoryArchive()


@pytest.fixture
def failing_archive() -> MemoryArchive:
    return MemoryArchive(fail=True)
