"""
Pydantic schemas for image upload reports returned by admin endpoints.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class ImageItemResult(BaseModel):
    """Outcome for a single uploaded file."""

    filename: str = Field(..., description="Original filename", example="pool.jpg")
    state: str = Field(..., description="Terminal file state", example="linked")
    index: Optional[int] = Field(None, description="Position in the gallery selection")
    step: Optional[str] = Field(None, description="Step that failed", example="upload")
    error: Optional[str] = Field(None, description="Failure reason")
    path: Optional[str] = Field(None, description="Storage path")
    url: Optional[str] = Field(None, description="Public URL")
    sort_order: Optional[int] = Field(None, description="Gallery sort order", example=1)


class GalleryUploadResult(BaseModel):
    """Aggregate gallery outcome."""

    total: int = Field(..., description="Files considered", example=5)
    completed: int = Field(..., description="Files uploaded and linked", example=3)
    failed: int = Field(..., description="Files that failed after validation", example=2)
    skipped: int = Field(0, description="Files beyond the gallery limit")
    aborted: bool = Field(False, description="Batch cancelled at validation")
    validation_errors: List[str] = Field(default_factory=list)
    items: List[ImageItemResult] = Field(default_factory=list)


class UploadReportResponse(BaseModel):
    """Image outcome of an admin submission."""

    hero: Optional[ImageItemResult] = None
    gallery: Optional[GalleryUploadResult] = None
    warnings: List[str] = Field(default_factory=list)
    messages: List[str] = Field(
        default_factory=list,
        description="User-facing lines",
        example=["Hero image uploaded", "3 of 5 gallery images uploaded, 2 failed: b.jpg: timed out; d.jpg: timed out"]
    )
    has_failures: bool = Field(False, description="Whether any image step failed")
