"""
Durable blob storage and secondary archival.

Each backend maps an opaque key (``uploads/<uuid>.png``,
``animations/<uuid>.gif``) to a byte string and a public URL.  Callers
receive the store as an explicit collaborator; nothing here keeps a
process-wide client.

Backends
--------
    LocalBlobStore  -- files under a root directory (development, tests)
    GCSBlobStore    -- Google Cloud Storage bucket (production)

Archives
--------
    DirectoryArchive -- copies into a (possibly mounted) directory
    DriveArchive     -- uploads into a Google Drive folder

Directory layout (LocalBlobStore)
---------------------------------
<root>/
    uploads/<uuid>.<ext>
    animations/<uuid>.gif

Writes are staged in a temporary file inside the target directory and
moved into place with ``os.replace`` so a reader never sees a partial
blob.  The staging file is removed on every failure path.
"""

from __future__ import annotations

import abc
import io
import logging
import os
import tempfile
import uuid
from pathlib import Path, PurePosixPath
from typing import Any

from gifloom.exceptions import (
    BlobNotFoundError,
    ConfigError,
    StoreReadError,
    StoreWriteError,
)

logger = logging.getLogger(__name__)

GCS_PUBLIC_URL = "https://storage.googleapis.com"


def new_blob_key(prefix: str, suffix: str = "") -> str:
    """Return a collision-resistant key such as ``uploads/3f2a...9c.png``."""
    return f"{prefix}/{uuid.uuid4().hex}{suffix.lower()}"


def _check_key(key: str) -> str:
    """Reject keys that could escape the store root."""
    path = PurePosixPath(key)
    if not key or path.is_absolute() or ".." in path.parts or "\\" in key:
        raise ValueError(f"Invalid blob key: {key!r}")
    return key


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class BlobStore(abc.ABC):
    """Key -> bytes store.  Implementations must be safe for concurrent use."""

    name: str = "abstract"

    @abc.abstractmethod
    def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Write *data* under *key* and return its public URL."""

    @abc.abstractmethod
    def get(self, key: str) -> bytes:
        """Return the bytes stored under *key*."""

    @abc.abstractmethod
    def url_for(self, key: str) -> str:
        """Return the public URL of *key*."""

    def key_for_url(self, url: str) -> str | None:
        """Return the key behind *url*, or None if the URL is not ours."""
        prefix = self.url_for("")
        if not url.startswith(prefix) or len(url) == len(prefix):
            return None
        try:
            return _check_key(url[len(prefix):])
        except ValueError:
            return None


class ArchiveStore(abc.ABC):
    """Secondary, optional copy of produced artifacts."""

    name: str = "abstract"

    @abc.abstractmethod
    def archive(self, name: str, data: bytes) -> str:
        """Persist *data* as *name* and return where it was written."""


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------

class LocalBlobStore(BlobStore):
    """Blob store rooted in a local directory."""

    name = "local"

    def __init__(self, root: Path, base_url: str | None = None) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/") if base_url else None

    def _path(self, key: str) -> Path:
        return self.root.joinpath(*PurePosixPath(_check_key(key)).parts)

    def url_for(self, key: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{key}"
        root_uri = self.root.resolve().as_uri()
        return f"{root_uri}/{key}"

    def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        dest = self._path(key)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(dest, data)
        except OSError as exc:
            raise StoreWriteError(f"Failed to write blob {key!r}: {exc}") from exc
        logger.debug("Stored %d bytes at %s", len(data), dest)
        return self.url_for(key)

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise BlobNotFoundError(f"No blob stored under {key!r}", key=key) from exc
        except OSError as exc:
            raise StoreReadError(f"Failed to read blob {key!r}: {exc}") from exc


def _atomic_write(dest: Path, data: bytes) -> None:
    """Write *data* to *dest* via a sibling temp file and ``os.replace``."""
    fd, tmp_name = tempfile.mkstemp(prefix=".staging-", dir=str(dest.parent))
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, dest)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


# ---------------------------------------------------------------------------
# Google Cloud Storage
# ---------------------------------------------------------------------------

class GCSBlobStore(BlobStore):
    """Blob store backed by a Google Cloud Storage bucket.

    Requires the ``gcs`` extra (google-cloud-storage).  Credentials come
    from the environment (Application Default Credentials).
    """

    name = "gcs"

    def __init__(
        self,
        bucket_name: str,
        client: Any = None,
        timeout_s: float = 300.0,
    ) -> None:
        if not bucket_name:
            raise ConfigError("GCSBlobStore requires a bucket name")
        if client is None:
            from google.cloud import storage

            client = storage.Client()
        self.bucket_name = bucket_name
        self.timeout_s = timeout_s
        self._bucket = client.bucket(bucket_name)

    def url_for(self, key: str) -> str:
        return f"{GCS_PUBLIC_URL}/{self.bucket_name}/{key}"

    def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        from google.api_core import exceptions as gexc

        blob = self._bucket.blob(_check_key(key))
        try:
            blob.upload_from_string(
                data,
                content_type=content_type or "application/octet-stream",
                timeout=self.timeout_s,
            )
        except gexc.GoogleAPIError as exc:
            raise StoreWriteError(f"GCS upload of {key!r} failed: {exc}") from exc
        logger.debug("Uploaded %d bytes to gs://%s/%s", len(data), self.bucket_name, key)
        return self.url_for(key)

    def get(self, key: str) -> bytes:
        from google.api_core import exceptions as gexc

        blob = self._bucket.blob(_check_key(key))
        try:
            return blob.download_as_bytes(timeout=self.timeout_s)
        except gexc.NotFound as exc:
            raise BlobNotFoundError(f"No blob stored under {key!r}", key=key) from exc
        except gexc.GoogleAPIError as exc:
            raise StoreReadError(f"GCS download of {key!r} failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------

class DirectoryArchive(ArchiveStore):
    """Archive that copies artifacts into a (possibly mounted) directory."""

    name = "directory"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def archive(self, name: str, data: bytes) -> str:
        dest = self.root / Path(name).name
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            _atomic_write(dest, data)
        except OSError as exc:
            raise StoreWriteError(f"Failed to archive {name!r}: {exc}") from exc
        logger.info("Archived %s (%d bytes)", dest, len(data))
        return str(dest)


class DriveArchive(ArchiveStore):
    """Archive that uploads artifacts into a Google Drive folder.

    Needs the optional ``drive`` extra.  Credentials come from Google's
    application-default lookup unless a ready *service* is injected.
    """

    name = "drive"

    SCOPES = ["https://www.googleapis.com/auth/drive.file"]

    def __init__(self, folder_id: str = "root", service: Any = None) -> None:
        self.folder_id = folder_id
        self._service = service

    @property
    def service(self) -> Any:
        if self._service is None:
            import google.auth
            from googleapiclient.discovery import build

            credentials, _ = google.auth.default(scopes=self.SCOPES)
            self._service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    def archive(self, name: str, data: bytes) -> str:
        from google.auth.exceptions import GoogleAuthError
        from googleapiclient.errors import HttpError
        from googleapiclient.http import MediaIoBaseUpload

        media = MediaIoBaseUpload(io.BytesIO(data), mimetype="image/gif", resumable=True)
        metadata = {"name": Path(name).name, "parents": [self.folder_id]}
        try:
            created = self.service.files().create(
                body=metadata,
                media_body=media,
                fields="id, webViewLink",
            ).execute()
        except (HttpError, GoogleAuthError) as exc:
            raise StoreWriteError(f"Drive upload of {name!r} failed: {exc}") from exc
        logger.info("Archived %s to Drive as %s (%d bytes)", name, created["id"], len(data))
        return created.get("webViewLink") or f"https://drive.google.com/file/d/{created['id']}/view"


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def build_blob_store(config: Any) -> BlobStore:
    """Construct the blob store described by a ServiceConfig."""
    if config.storage_backend == "gcs":
        return GCSBlobStore(config.bucket_name, timeout_s=config.fetch_timeout_s)
    if config.storage_backend == "local":
        return LocalBlobStore(config.storage_root, base_url=config.public_base_url)
    raise ConfigError(f"Unknown storage backend: {config.storage_backend!r}")


def build_archive(config: Any) -> ArchiveStore | None:
    """Return the configured archive, or None when archival is unavailable."""
    if config.drive_folder_id:
        return DriveArchive(config.drive_folder_id)
    if config.archive_dir is None:
        return None
    return DirectoryArchive(config.archive_dir)
