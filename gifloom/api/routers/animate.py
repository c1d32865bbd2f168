"""
Animation endpoints: build a GIF from stored URLs and serve it back.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool

from gifloom.api.dependencies import get_pipeline, get_service
from gifloom.api.models import AnimateRequest, AnimateResponse
from gifloom.encoder import FrameDelay
from gifloom.pipeline import AnimationPipeline
from gifloom.service import Service

router = APIRouter()


@router.post("/animate", response_model=AnimateResponse, response_model_exclude_none=True)
async def animate(body: AnimateRequest, service: Service = Depends(get_service)):
    """Combine the given image URLs, in order, into one stored GIF."""
    archive_enabled = (
        service.config.archive_by_default if body.archive is None else body.archive
    )
    frame_delay = None
    if body.delay_centiseconds is not None:
        frame_delay = FrameDelay(default_cs=body.delay_centiseconds)

    result = await run_in_threadpool(
        service.pipeline.animate,
        body.image_urls,
        archive_enabled=archive_enabled,
        frame_delay=frame_delay,
    )
    return AnimateResponse(
        animation_url=result.stored_url,
        download_url=result.download_path,
        frame_count=result.frame_count,
        archive_location=result.archive_location,
    )


@router.get("/download/{animation_id}")
async def download(animation_id: str, pipeline: AnimationPipeline = Depends(get_pipeline)):
    """Return the stored GIF as an attachment."""
    data = await run_in_threadpool(pipeline.download, animation_id)
    return Response(
        content=data,
        media_type="image/gif",
        headers={"Content-Disposition": f'attachment; filename="{animation_id}.gif"'},
    )
