"""
Pydantic schemas for categories, blog posts and reviews managed from the admin dashboard.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
import uuid

from app.models.property import PropertyStatus
from app.models.content import ReviewStatus
from app.schemas.upload import UploadReportResponse


class CategoryCreate(BaseModel):
    """Schema for creating a category. Slug and sort order are assigned on creation."""

    name: str = Field(..., min_length=1, max_length=120, description="Category name", example="Beachfront Villas")
    description: Optional[str] = Field(None, max_length=5000, description="Category description")
    is_active: bool = Field(True, description="Whether the category is shown")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()


class CategoryResponse(BaseModel):
    """Schema for category responses."""

    id: str
    name: str
    slug: str = Field(..., example="beachfront-villas")
    description: Optional[str] = None
    hero_image_path: Optional[str] = None
    hero_image_url: str = ""
    is_active: bool
    sort_order: int = Field(..., description="Manual display position", example=0)
    created_at: datetime


class BlogPostCreate(BaseModel):
    """Schema for creating a blog post."""

    title: str = Field(..., min_length=1, max_length=255, description="Post title", example="Top 5 Beaches in Kilifi")
    excerpt: Optional[str] = Field(None, max_length=500, description="Short summary")
    content: str = Field(..., min_length=1, description="Post body")
    author_name: str = Field(..., min_length=1, max_length=120, description="Author display name", example="Jane W.")
    status: PropertyStatus = Field(PropertyStatus.DRAFT, description="Lifecycle status")
    is_featured: bool = Field(False)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class BlogPostResponse(BaseModel):
    """Schema for blog post responses."""

    id: str
    title: str
    slug: str
    excerpt: Optional[str] = None
    content: str
    author_name: str
    featured_image_path: Optional[str] = None
    featured_image_url: str = ""
    status: PropertyStatus
    is_featured: bool
    created_at: datetime


class ReviewCreate(BaseModel):
    """Schema for creating a guest review."""

    property_id: uuid.UUID = Field(..., description="Reviewed property")
    reviewer_name: str = Field(..., min_length=1, max_length=120, example="Amina K.")
    reviewer_location: Optional[str] = Field(None, max_length=120, example="Nairobi")
    rating: int = Field(..., ge=1, le=5, description="Star rating", example=5)
    title: Optional[str] = Field(None, max_length=255)
    comment: str = Field(..., min_length=1, description="Review text")
    status: ReviewStatus = Field(ReviewStatus.PENDING, description="Moderation status")
    is_featured: bool = Field(False)


class ReviewResponse(BaseModel):
    """Schema for review responses."""

    id: str
    property_id: str
    reviewer_name: str
    reviewer_location: Optional[str] = None
    reviewer_avatar_path: Optional[str] = None
    reviewer_avatar_url: str = ""
    rating: int
    title: Optional[str] = None
    comment: str
    status: ReviewStatus
    is_featured: bool
    created_at: datetime


class CategoryListResponse(BaseModel):
    categories: List[CategoryResponse]
    total: int


class CategoryMutationResponse(BaseModel):
    category: CategoryResponse
    uploads: UploadReportResponse


class BlogPostMutationResponse(BaseModel):
    post: BlogPostResponse
    uploads: UploadReportResponse


class ReviewMutationResponse(BaseModel):
    review: ReviewResponse
    uploads: UploadReportResponse
