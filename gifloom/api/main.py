"""
FastAPI application factory.

The service objects (blob store, archive, ingest coordinator, pipeline)
are built once per application and kept on ``app.state``; routers reach
them through the dependencies in ``gifloom.api.dependencies``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gifloom import __version__
from gifloom.api.models import ErrorResponse
from gifloom.api.routers import animate, health, upload
from gifloom.config import ServiceConfig, load_config
from gifloom.exceptions import ArchiveFailedError, GifloomError
from gifloom.service import build_service
from gifloom.storage import ArchiveStore, BlobStore
from gifloom.types import ErrorKind

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    ErrorKind.EMPTY_INPUT: 400,
    ErrorKind.UNSUPPORTED_FORMAT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ARCHIVE_FAILED: 502,
}


def status_for(kind: ErrorKind) -> int:
    """HTTP status for an error kind; anything not client-caused is 500."""
    return _STATUS_BY_KIND.get(kind, 500)


async def gifloom_error_handler(request: Request, exc: GifloomError) -> JSONResponse:
    status = status_for(exc.kind)
    body = ErrorResponse(error=exc.message, kind=exc.kind.value)
    if isinstance(exc, ArchiveFailedError):
        body.animation_url = exc.result.stored_url
        body.download_url = exc.result.download_path
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    service = app.state.service
    logger.info(
        "gifloom %s ready (storage=%s, archive=%s)",
        __version__, service.store.name,
        "on" if service.archive is not None else "off",
    )
    yield
    logger.info("Shutting down")
    service.close()


def create_app(
    config: ServiceConfig | None = None,
    store: BlobStore | None = None,
    archive: ArchiveStore | None = None,
) -> FastAPI:
    """
    Build the application.

    Parameters
    ----------
    config : ServiceConfig, optional
        Defaults to ``load_config()`` (YAML file + environment).
    store, archive : optional
        Override the configured back-ends (used by tests).
    """
    if config is None:
        config = load_config()

    app = FastAPI(
        title="gifloom",
        description="Upload images and combine them into animated GIFs",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = build_service(config, store=store, archive=archive)
    app.add_exception_handler(GifloomError, gifloom_error_handler)

    app.include_router(upload.router, tags=["upload"])
    app.include_router(animate.router, tags=["animate"])
    app.include_router(health.router, tags=["health"])
    return app
