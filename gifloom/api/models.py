"""
Request and response bodies.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RejectedItem(_WireModel):
    """One file that was not stored."""
    source_name: str = Field(..., alias="sourceName")
    kind: str = Field(..., description="Stable error kind, e.g. UnsupportedFormat")
    message: str


class UploadResponse(_WireModel):
    image_urls: List[str] = Field(..., alias="imageUrls", description="Stored URLs in upload order")
    rejected: Optional[List[RejectedItem]] = Field(
        None, description="Present only when the ingest policy is 'collect'"
    )


class AnimateRequest(_WireModel):
    image_urls: List[str] = Field(default_factory=list, alias="imageUrls")
    archive: Optional[bool] = Field(None, description="Override the archive_by_default setting")
    delay_centiseconds: Optional[int] = Field(
        None, alias="delayCentiseconds", ge=0, le=0xFFFF,
        description="Per-frame delay; defaults to the configured delay",
    )


class AnimateResponse(_WireModel):
    animation_url: str = Field(..., alias="animationUrl")
    download_url: str = Field(..., alias="downloadUrl")
    frame_count: int = Field(..., alias="frameCount")
    archive_location: Optional[str] = Field(None, alias="archiveLocation")


class ErrorResponse(_WireModel):
    error: str
    kind: str
    animation_url: Optional[str] = Field(None, alias="animationUrl")
    download_url: Optional[str] = Field(None, alias="downloadUrl")


class HealthStatus(_WireModel):
    status: str
    version: str
    storage_backend: str = Field(..., alias="storageBackend")
    archive_available: bool = Field(..., alias="archiveAvailable")
