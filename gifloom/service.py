"""
Wiring: turn a ServiceConfig into the ingest coordinator and pipeline.

Both the HTTP app and the CLI build a ``Service`` once and share its store,
archive and fetcher across requests.
"""

from __future__ import annotations

from dataclasses import dataclass

from gifloom.config import ServiceConfig
from gifloom.encoder import GifConfig
from gifloom.ingest import IngestConfig, IngestCoordinator
from gifloom.pipeline import AnimationPipeline, PipelineConfig
from gifloom.quantize import QuantizerConfig
from gifloom.storage import ArchiveStore, BlobStore, build_archive, build_blob_store


def ingest_config(config: ServiceConfig) -> IngestConfig:
    return IngestConfig(policy=config.ingest_policy, max_workers=config.max_workers)


def pipeline_config(config: ServiceConfig) -> PipelineConfig:
    return PipelineConfig(
        max_workers=config.max_workers,
        fetch_timeout_s=config.fetch_timeout_s,
        quantizer=QuantizerConfig(
            max_colors=config.max_colors,
            dither=config.dither,
            background=config.background,
        ),
        gif=GifConfig(
            default_delay_cs=config.default_delay_cs,
            loop_count=config.loop_count,
        ),
    )


@dataclass
class Service:
    config: ServiceConfig
    store: BlobStore
    archive: ArchiveStore | None
    coordinator: IngestCoordinator
    pipeline: AnimationPipeline

    def close(self) -> None:
        self.pipeline.close()


def build_service(
    config: ServiceConfig,
    store: BlobStore | None = None,
    archive: ArchiveStore | None = None,
) -> Service:
    """Build a Service; *store* / *archive* override the configured ones."""
    store = store if store is not None else build_blob_store(config)
    if archive is None:
        archive = build_archive(config)
    return Service(
        config=config,
        store=store,
        archive=archive,
        coordinator=IngestCoordinator(store, ingest_config(config)),
        pipeline=AnimationPipeline(store, archive, pipeline_config(config)),
    )
