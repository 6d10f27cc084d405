"""
Pydantic schemas for public search responses.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal

from app.schemas.filters import FilterState
from app.schemas.property import PropertySummary


class EmptyState(BaseModel):
    """Affordance shown when a search has no results."""

    message: str = Field(
        ...,
        description="Explanation shown instead of results",
        example="No properties match your filters"
    )
    clear_filters_query: str = Field(
        "",
        description="Query string that keeps the text query and clears every filter",
        example="q=villa"
    )
    can_clear_filters: bool = Field(
        False,
        description="Whether clearing filters could widen the result set"
    )


class SearchResponse(BaseModel):
    """Schema for search results."""

    query: str = Field("", description="Committed free-text query", example="villa")
    filters: FilterState = Field(..., description="Filter state the results were computed for")
    results: List[PropertySummary] = Field(..., description="Matching properties in display order")
    total: int = Field(..., description="Number of results", example=12)
    query_string: str = Field(
        "",
        description="Canonical URL query string for this search (defaults omitted)",
        example="q=villa&type=rental&sortBy=price_low"
    )
    empty_state: Optional[EmptyState] = Field(None, description="Present only when there are no results")

    class Config:
        json_encoders = {
            Decimal: lambda v: float(v)
        }


class SuggestionResponse(BaseModel):
    """Schema for autocomplete suggestions."""

    query: str = Field(..., description="Query the suggestions were computed for", example="wat")
    suggestions: List[PropertySummary] = Field(default_factory=list, description="At most five suggestions")

    class Config:
        json_encoders = {
            Decimal: lambda v: float(v)
        }


class AmenitiesResponse(BaseModel):
    """Distinct amenity tags across published properties."""

    amenities: List[str] = Field(..., description="Sorted amenity tags", example=["Beach Access", "Pool", "WiFi"])


class RangeStats(BaseModel):
    """Minimum and maximum of a numeric property attribute."""

    min: float = Field(..., description="Smallest value", example=0)
    max: float = Field(..., description="Largest value", example=100000)


class PropertyStatsResponse(BaseModel):
    """Value ranges that drive the filter controls."""

    price_range: RangeStats
    bedroom_range: RangeStats
    bed_range: RangeStats
    guest_range: RangeStats
