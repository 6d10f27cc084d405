"""
Property category model (sales collections such as "Beachfront Villas").
"""

from sqlalchemy import String, Text, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base
from typing import Optional


class Category(Base):
    """Manually ordered property category."""

    __tablename__ = "property_categories"

    name: Mapped[str] = mapped_column(String(120), nullable=False)

    slug: Mapped[str] = mapped_column(
        String(140),
        nullable=False,
        unique=True,
        index=True
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    hero_image_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        index=True,
        comment="Explicit manual ordering"
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "hero_image_path": self.hero_image_path,
            "is_active": self.is_active,
            "sort_order": self.sort_order,
            "created_at": self.created_at,
        }
