"""
Pydantic schemas for request/response validation.
"""

# Search filter state
from .filters import (
    FilterState,
    ListingFilter,
    TriState,
    AgeBucket,
    SortKey,
    parse_search_params,
    parse_query_string
)

# Property schemas
from .property import (
    PropertyBase,
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    PropertyImageResponse,
    PropertySummary,
    PropertyMutationResponse
)

# Search schemas
from .search import (
    EmptyState,
    SearchResponse,
    SuggestionResponse,
    AmenitiesResponse,
    RangeStats,
    PropertyStatsResponse
)

# Content schemas
from .content import (
    CategoryCreate,
    CategoryResponse,
    CategoryListResponse,
    BlogPostCreate,
    BlogPostResponse,
    ReviewCreate,
    ReviewResponse,
    CategoryMutationResponse,
    BlogPostMutationResponse,
    ReviewMutationResponse
)

# Upload schemas
from .upload import (
    ImageItemResult,
    GalleryUploadResult,
    UploadReportResponse
)

__all__ = [
    # Filters
    "FilterState",
    "ListingFilter",
    "TriState",
    "AgeBucket",
    "SortKey",
    "parse_search_params",
    "parse_query_string",

    # Property
    "PropertyBase",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyResponse",
    "PropertyListResponse",
    "PropertyImageResponse",
    "PropertySummary",

    # Search
    "EmptyState",
    "SearchResponse",
    "SuggestionResponse",
    "AmenitiesResponse",
    "RangeStats",
    "PropertyStatsResponse",

    # Content
    "CategoryCreate",
    "CategoryResponse",
    "CategoryListResponse",
    "BlogPostCreate",
    "BlogPostResponse",
    "ReviewCreate",
    "ReviewResponse",
    "CategoryMutationResponse",
    "BlogPostMutationResponse",
    "ReviewMutationResponse",

    # Upload
    "ImageItemResult",
    "GalleryUploadResult",
    "UploadReportResponse"
]
