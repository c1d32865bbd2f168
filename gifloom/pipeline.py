"""
Animation pipeline: ordered image URLs -> stored animated GIF.

    URLs --[fetch]--> bytes --[decode]--> ImageAsset --[quantize]--> frame
                                                                       |
    AnimationResult <--[archive?]-- [store] <--[encode all frames]-----+

Fetch, decode and quantize run per URL in a ThreadPoolExecutor.  Each
worker owns its bytes and pixel grid until it hands the finished frame
back; frames are collected into a pre-sized list by original position,
so frame order always matches URL order.

Any failure before the store write aborts the request and nothing is
written.  An archive failure happens after the primary write and is
raised as ArchiveFailedError carrying the stored result.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import uuid
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Sequence

from gifloom.decoding import decode_image
from gifloom.encoder import FrameDelay, GifConfig, encode_animation
from gifloom.exceptions import (
    ArchiveFailedError,
    BlobNotFoundError,
    EmptyInputError,
    GifloomError,
    NotFoundError,
)
from gifloom.fetch import FrameFetcher
from gifloom.quantize import QuantizerConfig, quantize_asset
from gifloom.storage import ArchiveStore, BlobStore
from gifloom.types import AnimationFrame, AnimationResult

logger = logging.getLogger(__name__)

ANIMATION_PREFIX = "animations"
DOWNLOAD_ROUTE = "/download"

_ANIMATION_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def animation_key(animation_id: str) -> str:
    return f"{ANIMATION_PREFIX}/{animation_id}.gif"


@dataclass(frozen=True)
class PipelineConfig:
    max_workers: int = 8
    fetch_timeout_s: float = 30.0
    quantizer: QuantizerConfig = field(default_factory=QuantizerConfig)
    gif: GifConfig = field(default_factory=GifConfig)


class AnimationPipeline:
    """Builds, stores and serves animations."""

    def __init__(
        self,
        store: BlobStore,
        archive: ArchiveStore | None = None,
        config: PipelineConfig = PipelineConfig(),
        fetcher: FrameFetcher | None = None,
    ) -> None:
        self.store = store
        self.archive = archive
        self.config = config
        self.fetcher = fetcher or FrameFetcher(store, timeout_s=config.fetch_timeout_s)

    # -- Worker ----------------------------------------------------------------

    def _build_frame(self, url: str) -> AnimationFrame:
        """Fetch, decode and quantize one source image."""
        data = self.fetcher.fetch(url)
        asset = decode_image(data)
        return quantize_asset(asset, self.config.quantizer)

    def build_frames(
        self,
        urls: Sequence[str],
        on_item_done: Callable[[AnimationFrame], None] | None = None,
    ) -> list[AnimationFrame]:
        """Turn *urls* into frames, in URL order.  Fails on the first error."""
        slots: list[AnimationFrame | None] = [None] * len(urls)
        workers = max(1, min(self.config.max_workers, len(urls)))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="animate") as pool:
            future_to_idx: dict[Future[AnimationFrame], int] = {
                pool.submit(self._build_frame, url): idx
                for idx, url in enumerate(urls)
            }
            for fut in as_completed(future_to_idx):
                idx = future_to_idx[fut]
                try:
                    frame = fut.result()
                except GifloomError as exc:
                    for pending_fut in future_to_idx:
                        pending_fut.cancel()
                    logger.warning("Frame %d (%s) failed: %s", idx, urls[idx], exc)
                    raise
                except Exception:
                    for pending_fut in future_to_idx:
                        pending_fut.cancel()
                    logger.exception("Frame %d (%s) crashed", idx, urls[idx])
                    raise
                slots[idx] = frame
                if on_item_done is not None:
                    on_item_done(frame)

        return [frame for frame in slots if frame is not None]

    # -- Public API ------------------------------------------------------------

    def animate(
        self,
        urls: Sequence[str],
        archive_enabled: bool = False,
        frame_delay: FrameDelay | None = None,
        on_item_done: Callable[[AnimationFrame], None] | None = None,
    ) -> AnimationResult:
        """
        Build one animated GIF from *urls* and store it.

        Parameters
        ----------
        urls : sequence of str
            Source images, in frame order.
        archive_enabled : bool
            Also copy the result to the secondary archive, if one exists.
        frame_delay : FrameDelay, optional
            Per-frame timing; defaults to the encoder's default delay.
        on_item_done : callable, optional
            Invoked after each frame is ready.

        Raises
        ------
        EmptyInputError
            If *urls* is empty (before any fetch or store call).
        StoreReadError, DecodeFailedError, EmptyFrameError, EncodeError
            If any frame cannot be produced; nothing is stored.
        StoreWriteError
            If the primary store write fails.
        ArchiveFailedError
            If the archive write fails after the primary write succeeded.
        """
        if not urls:
            raise EmptyInputError("No image URLs supplied.")

        logger.info("Animating %d frames", len(urls))
        frames = self.build_frames(urls, on_item_done=on_item_done)

        timing = frame_delay or FrameDelay(default_cs=self.config.gif.default_delay_cs)
        frames = [
            dataclasses.replace(frame, delay_cs=delay)
            for frame, delay in zip(frames, timing.resolve(len(frames)))
        ]
        encoded = encode_animation(frames, self.config.gif)

        animation_id = uuid.uuid4().hex
        stored_url = self.store.put(
            animation_key(animation_id), encoded, content_type="image/gif",
        )
        result = AnimationResult(
            animation_id=animation_id,
            encoded_bytes=encoded,
            stored_url=stored_url,
            download_path=f"{DOWNLOAD_ROUTE}/{animation_id}",
            frame_count=len(frames),
        )
        logger.info("Stored animation %s (%d bytes)", animation_id, len(encoded))

        if archive_enabled:
            result = self._archive(result)
        return result

    def _archive(self, result: AnimationResult) -> AnimationResult:
        if self.archive is None:
            logger.warning(
                "Archival requested for %s but no archive is configured; skipping.",
                result.animation_id,
            )
            return result
        try:
            location = self.archive.archive(
                f"animation-{result.animation_id}.gif", result.encoded_bytes,
            )
        except Exception as exc:
            logger.error("Archiving %s failed: %s", result.animation_id, exc)
            raise ArchiveFailedError(
                f"Animation {result.animation_id} was stored but archiving failed: {exc}",
                result=result,
            ) from exc
        return dataclasses.replace(result, archive_location=location)

    def download(self, animation_id: str) -> bytes:
        """Return the stored bytes of *animation_id*, verbatim."""
        if not _ANIMATION_ID_RE.match(animation_id):
            raise NotFoundError(f"Unknown animation: {animation_id!r}")
        try:
            return self.store.get(animation_key(animation_id))
        except BlobNotFoundError as exc:
            raise NotFoundError(f"Unknown animation: {animation_id!r}") from exc

    def close(self) -> None:
        self.fetcher.close()
