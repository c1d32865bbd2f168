"""
Health check endpoint for load balancers and container probes.
"""

from fastapi import APIRouter, Depends

from gifloom import __version__
from gifloom.api.dependencies import get_service
from gifloom.api.models import HealthStatus
from gifloom.service import Service

router = APIRouter()


@router.get("/health", response_model=HealthStatus)
async def health_check(service: Service = Depends(get_service)):
    return HealthStatus(
        status="healthy",
        version=__version__,
        storage_backend=service.store.name,
        archive_available=service.archive is not None,
    )
