"""
Request-scoped accessors for the shared service objects on ``app.state``.
"""

from fastapi import Request

from gifloom.ingest import IngestCoordinator
from gifloom.pipeline import AnimationPipeline
from gifloom.service import Service


def get_service(request: Request) -> Service:
    return request.app.state.service


def get_coordinator(request: Request) -> IngestCoordinator:
    return get_service(request).coordinator


def get_pipeline(request: Request) -> AnimationPipeline:
    return get_service(request).pipeline
