"""
Pydantic schemas for property requests and responses.
Handles admin create/update payloads, public detail views and search result summaries.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Callable, List, Optional
from datetime import datetime
from decimal import Decimal
import uuid

from app.models.property import ListingType, PropertyStatus
from app.schemas.upload import UploadReportResponse
from app.utils.validators import ValidationUtils

PROPERTY_BUCKET = "property-images"

UrlResolver = Callable[[str, Optional[str]], str]


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Property listing title",
        example="Ocean View Villa"
    )

    description: Optional[str] = Field(
        None,
        max_length=20000,
        description="Detailed property description",
        example="Four-bedroom beachfront villa with private pool."
    )

    property_type_text: Optional[str] = Field(
        None,
        max_length=120,
        description="Free-text property type",
        example="Villa"
    )

    specific_location: Optional[str] = Field(
        None,
        max_length=255,
        description="Free-text location",
        example="Watamu, Kilifi"
    )

    category_id: Optional[uuid.UUID] = Field(
        None,
        description="Sales collection the property belongs to"
    )

    listing_type: ListingType = Field(
        ListingType.RENTAL,
        description="rental, sale or both",
        example="rental"
    )

    rental_price: Optional[Decimal] = Field(
        None,
        ge=0,
        description="Nightly rental price",
        example=25000
    )

    sale_price: Optional[Decimal] = Field(
        None,
        ge=0,
        description="Sale price",
        example=45000000
    )

    currency: str = Field(
        "KES",
        min_length=3,
        max_length=3,
        description="ISO currency code",
        example="KES"
    )

    bedrooms: Optional[int] = Field(None, ge=0, le=100, description="Number of bedrooms", example=4)
    beds: Optional[int] = Field(None, ge=0, le=200, description="Number of beds", example=5)
    bathrooms: Optional[int] = Field(None, ge=0, le=100, description="Number of bathrooms", example=3)
    max_guests: Optional[int] = Field(None, ge=0, le=500, description="Maximum guests", example=8)

    video_url: Optional[str] = Field(
        None,
        max_length=500,
        description="Video tour URL",
        example="https://www.youtube.com/watch?v=abc123"
    )

    amenities: List[str] = Field(
        default_factory=list,
        description="Amenity tags (list or comma-separated string)",
        example=["Pool", "WiFi", "Beach Access"]
    )

    meta_title: Optional[str] = Field(None, max_length=255, description="SEO title")
    meta_description: Optional[str] = Field(None, max_length=500, description="SEO description")
    focus_keyword: Optional[str] = Field(None, max_length=120, description="SEO focus keyword")

    status: PropertyStatus = Field(
        PropertyStatus.DRAFT,
        description="Lifecycle status",
        example="published"
    )

    is_featured: bool = Field(False, description="Whether the property is featured")
    is_active: bool = Field(True, description="Whether the property listing is active")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        """Validate and clean title."""
        if not v or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    @field_validator('amenities', mode='before')
    @classmethod
    def parse_amenities(cls, v):
        """Accept amenities as a list or a comma-separated string."""
        return ValidationUtils.parse_amenities(v)

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        return v.upper()


class PropertyCreate(PropertyBase):
    """Schema for creating a new property. The slug is generated from the title."""

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Ocean View Villa",
                "description": "Four-bedroom beachfront villa with private pool.",
                "specific_location": "Watamu, Kilifi",
                "listing_type": "both",
                "rental_price": 25000,
                "sale_price": 45000000,
                "bedrooms": 4,
                "beds": 5,
                "max_guests": 8,
                "amenities": ["Pool", "WiFi"],
                "status": "published"
            }
        }


class PropertyUpdate(BaseModel):
    """
    Schema for updating an existing property.
    There is no slug field: the slug assigned at creation is preserved.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=20000)
    property_type_text: Optional[str] = Field(None, max_length=120)
    specific_location: Optional[str] = Field(None, max_length=255)
    category_id: Optional[uuid.UUID] = None
    listing_type: Optional[ListingType] = None
    rental_price: Optional[Decimal] = Field(None, ge=0)
    sale_price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    bedrooms: Optional[int] = Field(None, ge=0, le=100)
    beds: Optional[int] = Field(None, ge=0, le=200)
    bathrooms: Optional[int] = Field(None, ge=0, le=100)
    max_guests: Optional[int] = Field(None, ge=0, le=500)
    video_url: Optional[str] = Field(None, max_length=500)
    amenities: Optional[List[str]] = None
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=500)
    focus_keyword: Optional[str] = Field(None, max_length=120)
    status: Optional[PropertyStatus] = None
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        """Validate and clean title."""
        if v is not None:
            if not v.strip():
                raise ValueError("Title cannot be empty")
            return v.strip()
        return v

    @field_validator('amenities', mode='before')
    @classmethod
    def parse_amenities(cls, v):
        if v is None:
            return v
        return ValidationUtils.parse_amenities(v)

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Ocean View Villa (renovated)",
                "rental_price": 27500,
                "is_featured": True
            }
        }


class PropertyImageResponse(BaseModel):
    """Gallery image with its public URL."""

    id: str = Field(..., description="Image unique identifier")
    image_path: str = Field(..., description="Storage path", example="properties/gallery/<id>/1700000000000-0-pool.jpg")
    url: str = Field(..., description="Public URL of the image")
    alt_text: Optional[str] = Field(None, description="Alt text")
    sort_order: int = Field(..., description="Display position", example=1)
    is_active: bool = Field(True, description="Whether the image is shown")


class PropertyResponse(PropertyBase):
    """Schema for property detail responses."""

    id: str = Field(..., description="Property unique identifier")
    slug: str = Field(..., description="URL-safe identifier", example="ocean-view-villa")
    hero_image_path: Optional[str] = Field(None, description="Storage path of the hero image")
    hero_image_url: str = Field("", description="Public URL of the hero image")
    category_name: Optional[str] = Field(None, description="Category name")
    images: List[PropertyImageResponse] = Field(default_factory=list, description="Gallery ordered by sort order")
    created_at: datetime = Field(..., description="Property creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_model(cls, prop, resolve_url: UrlResolver, active_images_only: bool = False) -> "PropertyResponse":
        """Build the response from a Property row, resolving public image URLs."""
        data = prop.to_dict(include_images=False)
        data["id"] = str(prop.id)
        data["category_id"] = prop.category_id
        data["hero_image_url"] = resolve_url(PROPERTY_BUCKET, prop.hero_image_path)
        data["category_name"] = prop.category.name if prop.category else None
        images = prop.active_images if active_images_only else prop.images
        data["images"] = [
            PropertyImageResponse(
                id=str(image.id),
                image_path=image.image_path,
                url=resolve_url(PROPERTY_BUCKET, image.image_path),
                alt_text=image.alt_text,
                sort_order=image.sort_order,
                is_active=image.is_active,
            )
            for image in images
        ]
        return cls.model_validate(data)

    class Config:
        json_encoders = {
            Decimal: lambda v: float(v)
        }


class PropertySummary(BaseModel):
    """Schema for search results and suggestions (card-level information)."""

    id: str = Field(..., description="Property unique identifier")
    title: str = Field(..., description="Property listing title")
    slug: str = Field(..., description="URL-safe identifier")
    specific_location: Optional[str] = Field(None, description="Free-text location")
    property_type_text: Optional[str] = Field(None, description="Free-text property type")
    listing_type: ListingType = Field(..., description="rental, sale or both")
    rental_price: Optional[Decimal] = Field(None, description="Rental price")
    sale_price: Optional[Decimal] = Field(None, description="Sale price")
    display_price: Optional[Decimal] = Field(None, description="Price for the listing type")
    currency: str = Field("KES", description="Currency code")
    bedrooms: Optional[int] = None
    beds: Optional[int] = None
    bathrooms: Optional[int] = None
    max_guests: Optional[int] = None
    amenities: List[str] = Field(default_factory=list)
    is_featured: bool = False
    has_video: bool = False
    hero_image_url: str = Field("", description="Public URL of the hero image")
    image_urls: List[str] = Field(default_factory=list, description="Active gallery image URLs")
    created_at: datetime = Field(..., description="Creation timestamp")

    @classmethod
    def from_model(cls, prop, resolve_url: UrlResolver) -> "PropertySummary":
        return cls(
            id=str(prop.id),
            title=prop.title,
            slug=prop.slug,
            specific_location=prop.specific_location,
            property_type_text=prop.property_type_text,
            listing_type=prop.listing_type,
            rental_price=prop.rental_price,
            sale_price=prop.sale_price,
            display_price=prop.display_price,
            currency=prop.currency,
            bedrooms=prop.bedrooms,
            beds=prop.beds,
            bathrooms=prop.bathrooms,
            max_guests=prop.max_guests,
            amenities=list(prop.amenities or []),
            is_featured=prop.is_featured,
            has_video=prop.has_video,
            hero_image_url=resolve_url(PROPERTY_BUCKET, prop.hero_image_path),
            image_urls=[resolve_url(PROPERTY_BUCKET, image.image_path) for image in prop.active_images],
            created_at=prop.created_at,
        )

    class Config:
        json_encoders = {
            Decimal: lambda v: float(v)
        }


class PropertyListResponse(BaseModel):
    """Schema for the admin property list."""

    properties: List[PropertyResponse] = Field(..., description="List of properties")
    total: int = Field(..., description="Total number of properties", example=42)


class PropertyMutationResponse(BaseModel):
    """Admin create/update result: the saved property plus its image outcome."""

    property: PropertyResponse
    uploads: UploadReportResponse
