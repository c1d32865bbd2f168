"""
Upload endpoint: multipart batch -> stored blob URLs.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from gifloom.api.dependencies import get_coordinator
from gifloom.api.models import RejectedItem, UploadResponse
from gifloom.ingest import IngestCoordinator, accepted_urls
from gifloom.types import IngestPolicy, Rejected, UploadTask

router = APIRouter()


@router.post("/upload", response_model=UploadResponse, response_model_exclude_none=True)
async def upload_images(
    images: Optional[List[UploadFile]] = File(None),
    coordinator: IngestCoordinator = Depends(get_coordinator),
):
    """
    Store every uploaded image and return their URLs in upload order.

    Under the default policy a single bad file rejects the whole batch
    with 400 before anything is stored.
    """
    batch = []
    for image in images or []:
        batch.append(UploadTask(source_name=image.filename or "", raw_bytes=await image.read()))

    results = await run_in_threadpool(coordinator.ingest, batch)

    response = UploadResponse(image_urls=accepted_urls(results))
    if coordinator.config.policy == IngestPolicy.COLLECT:
        response.rejected = [
            RejectedItem(source_name=r.source_name, kind=r.kind.value, message=r.message)
            for r in results
            if isinstance(r, Rejected)
        ]
    return response
