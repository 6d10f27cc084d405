"""
Public search API endpoints.
Query parameters mirror the search page URL so a page URL can be replayed as-is.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from app.schemas.filters import parse_search_params
from app.schemas.property import PropertySummary
from app.schemas.search import (
    AmenitiesResponse,
    PropertyStatsResponse,
    SearchResponse,
    SuggestionResponse
)
from app.schemas.error import get_public_error_responses
from app.services.search import SearchService
from app.utils.dependencies import get_search_service


router = APIRouter(prefix="/search", tags=["Search"])


@router.get(
    "",
    response_model=SearchResponse,
    status_code=status.HTTP_200_OK,
    summary="Search properties",
    description="Search published properties by text and filters. Invalid filter values are ignored.",
    responses=get_public_error_responses()
)
async def search_properties(
    q: Optional[str] = Query(None, description="Free-text query"),
    type: Optional[str] = Query(None, description="Listing type: all, rental, sale or both"),
    location: Optional[str] = Query(None, description="Location substring"),
    min_price: Optional[str] = Query(None, alias="minPrice", description="Minimum price"),
    max_price: Optional[str] = Query(None, alias="maxPrice", description="Maximum price"),
    bedrooms: Optional[str] = Query(None, description="Minimum bedrooms"),
    beds: Optional[str] = Query(None, description="Minimum beds"),
    bathrooms: Optional[str] = Query(None, description="Minimum bathrooms"),
    max_guests: Optional[str] = Query(None, alias="maxGuests", description="Minimum guest capacity"),
    amenities: Optional[str] = Query(None, description="Comma-separated amenities, all required"),
    has_video: Optional[str] = Query(None, alias="hasVideo", description="all, yes or no"),
    is_featured: Optional[str] = Query(None, alias="isFeatured", description="all, yes or no"),
    property_age: Optional[str] = Query(None, alias="propertyAge", description="all, new, recent or older"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="newest, price_low, price_high or bedrooms"),
    search_service: SearchService = Depends(get_search_service)
) -> SearchResponse:
    """
    Search properties.

    Returns:
        Results in display order, the canonical query string and, when
        nothing matches, the empty-state affordance
    """
    params = {
        "q": q,
        "type": type,
        "location": location,
        "minPrice": min_price,
        "maxPrice": max_price,
        "bedrooms": bedrooms,
        "beds": beds,
        "bathrooms": bathrooms,
        "maxGuests": max_guests,
        "amenities": amenities,
        "hasVideo": has_video,
        "isFeatured": is_featured,
        "propertyAge": property_age,
        "sortBy": sort_by,
    }
    query, filters = parse_search_params({k: v for k, v in params.items() if v is not None})
    return await search_service.search(query, filters)


@router.get(
    "/suggestions",
    response_model=SuggestionResponse,
    status_code=status.HTTP_200_OK,
    summary="Autocomplete suggestions",
    description="Up to five suggestions for queries of at least three characters"
)
async def get_suggestions(
    q: str = Query("", max_length=200, description="Partial query"),
    search_service: SearchService = Depends(get_search_service)
) -> SuggestionResponse:
    rows = await search_service.get_search_suggestions(q)
    return SuggestionResponse(
        query=q.strip(),
        suggestions=[
            PropertySummary.from_model(row, search_service.gateway.resolve_public_url)
            for row in rows
        ],
    )


@router.get(
    "/amenities",
    response_model=AmenitiesResponse,
    status_code=status.HTTP_200_OK,
    summary="Available amenities",
    description="Distinct amenity tags across published properties"
)
async def get_amenities(
    search_service: SearchService = Depends(get_search_service)
) -> AmenitiesResponse:
    return AmenitiesResponse(amenities=await search_service.get_available_amenities())


@router.get(
    "/stats",
    response_model=PropertyStatsResponse,
    status_code=status.HTTP_200_OK,
    summary="Filter ranges",
    description="Price, bedroom, bed and guest ranges for filter controls"
)
async def get_stats(
    search_service: SearchService = Depends(get_search_service)
) -> PropertyStatsResponse:
    return await search_service.get_property_stats()
