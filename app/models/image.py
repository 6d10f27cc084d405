"""
PropertyImage model for gallery images.
Each row references a stored object and carries its display position.
"""

from sqlalchemy import String, Integer, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
import uuid
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from app.models.property import Property


class PropertyImage(Base):
    """
    Gallery image belonging to exactly one property.
    sort_order is the 1-based position in the admin's original selection.
    """

    __tablename__ = "property_images"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the property this image belongs to"
    )

    image_path: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        unique=True,
        comment="Storage path of the image object"
    )

    alt_text: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True
    )

    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Display position in the gallery"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True
    )

    property_rel: Mapped["Property"] = relationship(
        "Property",
        back_populates="images"
    )

    def __repr__(self) -> str:
        """String representation of the property image."""
        return f"<PropertyImage(id={self.id}, property_id={self.property_id}, sort_order={self.sort_order})>"

    @property
    def filename(self) -> str:
        return self.image_path.rsplit("/", 1)[-1]

    def to_dict(self) -> dict:
        """Convert image to dictionary for API responses."""
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "image_path": self.image_path,
            "alt_text": self.alt_text,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "created_at": self.created_at,
        }
