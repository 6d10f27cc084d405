"""
Search service for the public property search.
Runs filtered searches, autocomplete suggestions and the aggregate views that
drive filter controls. Storage failures degrade to empty results.
"""

from typing import List, Optional
from datetime import datetime
from decimal import Decimal
import logging

from app.config import Settings
from app.models.property import Property
from app.repositories.gateway import StorageGateway
from app.repositories.property import PropertyRepository
from app.schemas.filters import FilterState
from app.schemas.property import PropertySummary
from app.schemas.search import EmptyState, PropertyStatsResponse, RangeStats, SearchResponse
from app.utils.exceptions import PropertyNotFoundError, StorageError

logger = logging.getLogger(__name__)

CATEGORY_SUGGESTION_LIMIT = 3

DEFAULT_PRICE_RANGE = (0, 100000)
DEFAULT_BEDROOM_RANGE = (1, 10)
DEFAULT_BED_RANGE = (1, 10)
DEFAULT_GUEST_RANGE = (1, 20)


def _range(values: List, default) -> RangeStats:
    if not values:
        return RangeStats(min=default[0], max=default[1])
    return RangeStats(min=float(min(values)), max=float(max(values)))


class SearchService:
    """
    Public property search.
    Only published, active properties are ever returned.
    """

    def __init__(self, gateway: StorageGateway, settings: Settings):
        self.gateway = gateway
        self.settings = settings
        self.property_repo = PropertyRepository(gateway)

    async def search_properties(
        self,
        query: str,
        filters: FilterState,
        now: Optional[datetime] = None
    ) -> List[Property]:
        """
        Run a search and return matching rows.

        Args:
            query: Free-text query, may be empty
            filters: Active filter state
            now: Reference time for age buckets

        Returns:
            Matching properties, or an empty list when storage fails
        """
        try:
            return await self.property_repo.search(query, filters, now)
        except StorageError as e:
            logger.error(f"Property search failed for query {query!r}: {e}", extra={"query": query})
            return []

    async def search(self, query: str, filters: FilterState, now: Optional[datetime] = None) -> SearchResponse:
        """Search and shape the response, including the empty-state affordance."""
        query = (query or "").strip()
        rows = await self.search_properties(query, filters, now)
        results = [PropertySummary.from_model(row, self.gateway.resolve_public_url) for row in rows]

        return SearchResponse(
            query=query,
            filters=filters,
            results=results,
            total=len(results),
            query_string=filters.to_query_string(query),
            empty_state=None if results else self.empty_state(query, filters),
        )

    @staticmethod
    def empty_state(query: str, filters: FilterState) -> EmptyState:
        if filters.has_active_filters:
            return EmptyState(
                message="No properties match your filters",
                clear_filters_query=FilterState().to_query_string(query),
                can_clear_filters=True,
            )
        if query:
            return EmptyState(message=f'No properties found for "{query}"')
        return EmptyState(message="No properties available yet")

    async def get_search_suggestions(self, query: str, limit: Optional[int] = None) -> List[Property]:
        """
        Autocomplete suggestions for a partial query.

        Direct text matches come first (featured, then newest); properties in
        categories whose name or description matches fill remaining slots.

        Returns:
            At most `limit` properties; empty for queries below the minimum length
        """
        query = (query or "").strip()
        limit = limit or self.settings.suggestion_limit
        if len(query) < self.settings.suggestion_min_length:
            return []

        try:
            results = await self.property_repo.suggest(query, limit)
        except StorageError as e:
            logger.error(f"Suggestion query failed for {query!r}: {e}")
            return []

        if len(results) >= limit:
            return results[:limit]

        try:
            by_category = await self.property_repo.suggest_by_category(
                query, min(limit, CATEGORY_SUGGESTION_LIMIT)
            )
        except StorageError as e:
            logger.warning(f"Category suggestion query failed for {query!r}: {e}")
            by_category = []

        seen = {row.id for row in results}
        for row in by_category:
            if len(results) >= limit:
                break
            if row.id not in seen:
                results.append(row)
                seen.add(row.id)

        return results

    async def get_available_amenities(self) -> List[str]:
        """Sorted distinct amenity tags across published properties."""
        try:
            rows = await self.property_repo.list_public()
        except StorageError as e:
            logger.error(f"Failed to load amenities: {e}")
            return []

        amenities = set()
        for row in rows:
            for amenity in row.amenities or []:
                if amenity and isinstance(amenity, str):
                    amenities.add(amenity)
        return sorted(amenities)

    async def get_property_stats(self) -> PropertyStatsResponse:
        """
        Value ranges for filter controls.
        Missing and zero values are ignored; empty sets fall back to defaults.
        """
        try:
            rows = await self.property_repo.list_public()
        except StorageError as e:
            logger.error(f"Failed to load property stats: {e}")
            rows = []

        prices: List[Decimal] = []
        bedrooms: List[int] = []
        beds: List[int] = []
        guests: List[int] = []
        for row in rows:
            if row.rental_price:
                prices.append(row.rental_price)
            if row.sale_price:
                prices.append(row.sale_price)
            if row.bedrooms:
                bedrooms.append(row.bedrooms)
            if row.beds:
                beds.append(row.beds)
            if row.max_guests:
                guests.append(row.max_guests)

        return PropertyStatsResponse(
            price_range=_range(prices, DEFAULT_PRICE_RANGE),
            bedroom_range=_range(bedrooms, DEFAULT_BEDROOM_RANGE),
            bed_range=_range(beds, DEFAULT_BED_RANGE),
            guest_range=_range(guests, DEFAULT_GUEST_RANGE),
        )

    async def get_public_property(self, slug: str) -> Property:
        """
        Published, active property by slug.

        Raises:
            PropertyNotFoundError: If no visible property has this slug
        """
        prop = await self.property_repo.get_by_slug(slug, public_only=True)
        if not prop:
            raise PropertyNotFoundError(slug)
        return prop
