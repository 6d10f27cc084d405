"""
Property model for rental and sale listings.
Handles listing classification, per-classification pricing, amenities and media references.
"""

from sqlalchemy import String, Text, Integer, Numeric, Boolean, JSON, Enum as SQLEnum, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
from decimal import Decimal
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.image import PropertyImage
    from app.models.category import Category


class ListingType(str, enum.Enum):
    """Listing classification. BOTH means available for rental and sale at once."""
    RENTAL = "rental"
    SALE = "sale"
    BOTH = "both"


class PropertyStatus(str, enum.Enum):
    """Lifecycle status of a listing."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Property(Base):
    """
    Property model for managing rental and sale listings.
    The slug is derived from the title at creation and never regenerated.
    """

    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Property listing title"
    )

    slug: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="URL-safe identifier derived from the title"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Detailed property description"
    )

    property_type_text: Mapped[Optional[str]] = mapped_column(
        String(120),
        nullable=True,
        comment="Free-text property type (villa, cottage, ...)"
    )

    specific_location: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Free-text location"
    )

    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("property_categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    listing_type: Mapped[ListingType] = mapped_column(
        SQLEnum(ListingType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ListingType.RENTAL,
        index=True,
        comment="rental, sale or both"
    )

    # Pricing information, one field per classification
    rental_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=True,
        index=True
    )

    sale_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=14, scale=2),
        nullable=True,
        index=True
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="KES"
    )

    # Capacity
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    beds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_guests: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Media
    hero_image_path: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Storage path of the hero image"
    )

    video_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    amenities: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Unordered amenity tags"
    )

    # SEO fields also consulted by free-text search
    meta_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    meta_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    focus_keyword: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    status: Mapped[PropertyStatus] = mapped_column(
        SQLEnum(PropertyStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PropertyStatus.DRAFT,
        index=True
    )

    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    # Relationships
    images: Mapped[List["PropertyImage"]] = relationship(
        "PropertyImage",
        back_populates="property_rel",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="PropertyImage.sort_order.asc()"
    )

    category: Mapped[Optional["Category"]] = relationship(
        "Category",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        """String representation of the property."""
        return f"<Property(id={self.id}, slug={self.slug}, listing_type={self.listing_type})>"

    @property
    def display_price(self) -> Optional[Decimal]:
        """Price relevant to the listing classification (sale price for sale listings)."""
        if self.listing_type == ListingType.SALE:
            return self.sale_price
        return self.rental_price

    @property
    def has_video(self) -> bool:
        return bool(self.video_url)

    @property
    def active_images(self) -> List["PropertyImage"]:
        return [image for image in self.images if image.is_active]

    def to_dict(self, include_images: bool = True) -> dict:
        """Convert property to dictionary for API responses."""
        data = {
            "id": str(self.id),
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "property_type_text": self.property_type_text,
            "specific_location": self.specific_location,
            "category_id": str(self.category_id) if self.category_id else None,
            "listing_type": self.listing_type.value,
            "rental_price": self.rental_price,
            "sale_price": self.sale_price,
            "currency": self.currency,
            "bedrooms": self.bedrooms,
            "beds": self.beds,
            "bathrooms": self.bathrooms,
            "max_guests": self.max_guests,
            "hero_image_path": self.hero_image_path,
            "video_url": self.video_url,
            "amenities": list(self.amenities or []),
            "meta_title": self.meta_title,
            "meta_description": self.meta_description,
            "focus_keyword": self.focus_keyword,
            "status": self.status.value,
            "is_featured": self.is_featured,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_images:
            data["images"] = [image.to_dict() for image in self.images]
        return data
