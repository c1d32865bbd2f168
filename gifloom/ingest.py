"""
Concurrent upload ingestion.

Architecture
------------
Every accepted file is written to the blob store by its own worker in a
``concurrent.futures.ThreadPoolExecutor``.  Store writes are network/disk
bound, so threads are enough; nothing CPU-heavy happens here.

  - **Validation first**: extensions are checked for the whole batch
    before any worker starts, so a bad file never causes store traffic.

  - **Fresh keys**: each blob is stored as ``uploads/<uuid4><ext>``; the
    user's filename is never part of the key.

  - **Index-addressed results**: each future maps back to its position
    in the batch and writes into a pre-sized slot list, so the returned
    list is in input order regardless of completion order.

Error handling
--------------
- ABORT:    A rejected file raises UnsupportedFormatError before any
            upload.  The first store failure cancels pending futures and
            raises StoreWriteError; uploads already running finish and
            their results are discarded.
- COLLECT:  Every file is reported as Accepted or Rejected.
"""

from __future__ import annotations

import logging
import posixpath
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Sequence

from gifloom.exceptions import (
    EmptyInputError,
    GifloomError,
    StoreWriteError,
    UnsupportedFormatError,
)
from gifloom.storage import BlobStore, new_blob_key
from gifloom.types import (
    Accepted,
    IngestPolicy,
    Rejected,
    UploadTask,
    ValidationResult,
)

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})

_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}


def source_extension(source_name: str) -> str:
    """Return the lower-cased extension of *source_name* ('' if none)."""
    base = posixpath.basename(source_name.replace("\\", "/"))
    return posixpath.splitext(base)[1].lower()


def validate_source_name(source_name: str) -> str:
    """Return the normalized extension, or raise UnsupportedFormatError."""
    ext = source_extension(source_name)
    if ext not in ALLOWED_EXTENSIONS:
        raise UnsupportedFormatError(
            f"Unsupported file type for {source_name!r}; "
            f"allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
            source_name=source_name,
        )
    return ext


@dataclass(frozen=True)
class IngestConfig:
    policy: IngestPolicy = IngestPolicy.ABORT
    max_workers: int = 8
    key_prefix: str = "uploads"


class IngestCoordinator:
    """Validates and stores upload batches."""

    def __init__(self, store: BlobStore, config: IngestConfig = IngestConfig()) -> None:
        self.store = store
        self.config = config

    def _store_one(self, task: UploadTask, ext: str) -> Accepted:
        """Worker body: write one task's bytes under a fresh key."""
        key = new_blob_key(self.config.key_prefix, ext)
        url = self.store.put(key, task.raw_bytes, content_type=_CONTENT_TYPES[ext])
        logger.debug("Stored %s as %s", task.source_name, key)
        return Accepted(source_name=task.source_name, stored_url=url, key=key)

    def ingest(
        self,
        batch: Sequence[UploadTask],
        on_item_done: Callable[[ValidationResult], None] | None = None,
    ) -> list[ValidationResult]:
        """
        Validate and store every task in *batch*.

        Parameters
        ----------
        batch : sequence of UploadTask
            Files to ingest.
        on_item_done : callable, optional
            Invoked with each item's result as it completes.

        Returns
        -------
        list[ValidationResult]
            One result per task, in input order.

        Raises
        ------
        EmptyInputError
            If *batch* is empty.
        UnsupportedFormatError, StoreWriteError
            Under the ABORT policy, for the first failing task.
        """
        if not batch:
            raise EmptyInputError("No images uploaded.")

        policy = self.config.policy
        slots: list[ValidationResult | None] = [None] * len(batch)
        pending: dict[int, str] = {}

        # -- Phase 1: Validate names (no I/O) --------------------------------
        for idx, task in enumerate(batch):
            try:
                pending[idx] = validate_source_name(task.source_name)
            except UnsupportedFormatError as exc:
                if policy == IngestPolicy.ABORT:
                    logger.warning("Rejecting batch of %d: %s", len(batch), exc)
                    raise
                slots[idx] = Rejected(task.source_name, exc.kind, str(exc))
                if on_item_done is not None:
                    on_item_done(slots[idx])

        logger.info(
            "Ingesting %d of %d files (policy=%s)",
            len(pending), len(batch), policy.value,
        )

        # -- Phase 2: Parallel store ---------------------------------------
        if pending:
            workers = max(1, min(self.config.max_workers, len(pending)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ingest") as pool:
                future_to_idx: dict[Future[Accepted], int] = {
                    pool.submit(self._store_one, batch[idx], ext): idx
                    for idx, ext in pending.items()
                }
                for fut in as_completed(future_to_idx):
                    idx = future_to_idx[fut]
                    task = batch[idx]
                    try:
                        result: ValidationResult = fut.result()
                    except Exception as exc:
                        error = exc if isinstance(exc, GifloomError) else StoreWriteError(
                            f"Store write failed for {task.source_name!r}: {exc}"
                        )
                        logger.warning("Upload of %s failed: %s", task.source_name, error)
                        if policy == IngestPolicy.ABORT:
                            for pending_fut in future_to_idx:
                                pending_fut.cancel()
                            if error is exc:
                                raise
                            raise error from exc
                        result = Rejected(task.source_name, error.kind, str(error))
                    slots[idx] = result
                    if on_item_done is not None:
                        on_item_done(result)

        return [r for r in slots if r is not None]


def accepted_urls(results: Sequence[ValidationResult]) -> list[str]:
    """Stored URLs of the accepted results, in order."""
    return [r.stored_url for r in results if isinstance(r, Accepted)]
