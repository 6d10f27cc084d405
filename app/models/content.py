"""
Editorial content models: blog posts and guest reviews.
Both carry a single hero-style image reference filled in after upload.
"""

from sqlalchemy import String, Text, Integer, Boolean, ForeignKey, Enum as SQLEnum, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base
from app.models.property import PropertyStatus
import enum
import uuid
from typing import Optional


class ReviewStatus(str, enum.Enum):
    """Moderation status of a review."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BlogPost(Base):
    """Blog post with an optional featured image."""

    __tablename__ = "blog_posts"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    excerpt: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_name: Mapped[str] = mapped_column(String(120), nullable=False)
    featured_image_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[PropertyStatus] = mapped_column(
        SQLEnum(PropertyStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PropertyStatus.DRAFT
    )

    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "title": self.title,
            "slug": self.slug,
            "excerpt": self.excerpt,
            "content": self.content,
            "author_name": self.author_name,
            "featured_image_path": self.featured_image_path,
            "status": self.status.value,
            "is_featured": self.is_featured,
            "created_at": self.created_at,
        }


class Review(Base):
    """Guest review attached to a property, with an optional reviewer photo."""

    __tablename__ = "reviews"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    reviewer_name: Mapped[str] = mapped_column(String(120), nullable=False)
    reviewer_location: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    reviewer_avatar_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    comment: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[ReviewStatus] = mapped_column(
        SQLEnum(ReviewStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ReviewStatus.PENDING
    )

    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "reviewer_name": self.reviewer_name,
            "reviewer_location": self.reviewer_location,
            "reviewer_avatar_path": self.reviewer_avatar_path,
            "rating": self.rating,
            "title": self.title,
            "comment": self.comment,
            "status": self.status.value,
            "is_featured": self.is_featured,
            "created_at": self.created_at,
        }
