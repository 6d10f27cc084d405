"""
Database models for the realty search API.
Includes Property, PropertyImage, Category, BlogPost and Review.
"""

from app.models.property import Property, ListingType, PropertyStatus
from app.models.image import PropertyImage
from app.models.category import Category
from app.models.content import BlogPost, Review, ReviewStatus

# Export all models for easy importing
__all__ = [
    "Property",
    "ListingType",
    "PropertyStatus",
    "PropertyImage",
    "Category",
    "BlogPost",
    "Review",
    "ReviewStatus",
]
