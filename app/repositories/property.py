"""
Property repository: translates search filter state into Storage Gateway queries.
Server-side predicates cover text, listing type, location, price, capacity,
flags and age; amenity subset matching and client sort run in memory.
"""

from sqlalchemy import and_, or_, select
from app.models.property import Property, ListingType, PropertyStatus
from app.models.category import Category
from app.repositories.gateway import QuerySpec, StorageGateway
from app.schemas.filters import FilterState, ListingFilter, AgeBucket, SortKey
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

NEW_LISTING_DAYS = 30
RECENT_LISTING_DAYS = 180

# Columns consulted by free-text search
TEXT_SEARCH_COLUMNS = (
    Property.title,
    Property.description,
    Property.specific_location,
    Property.property_type_text,
    Property.focus_keyword,
)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards in user input (backslash is the escape character)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains(column, value: str):
    """Case-insensitive substring predicate."""
    return column.ilike(f"%{escape_like(value)}%", escape="\\")


def age_bounds(bucket: AgeBucket, now: datetime) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Creation-time window for an age bucket, computed relative to now.

    Returns:
        Tuple of (created_after, created_before); either may be None
    """
    new_cutoff = now - timedelta(days=NEW_LISTING_DAYS)
    recent_cutoff = now - timedelta(days=RECENT_LISTING_DAYS)

    if bucket is AgeBucket.NEW:
        return new_cutoff, None
    if bucket is AgeBucket.RECENT:
        return recent_cutoff, new_cutoff
    if bucket is AgeBucket.OLDER:
        return None, recent_cutoff
    return None, None


def effective_price(row: Any) -> Decimal:
    """Price relevant to the row's listing type; missing price counts as zero."""
    if row.listing_type == ListingType.SALE:
        price = row.sale_price
    else:
        price = row.rental_price
    return Decimal(price) if price is not None else Decimal(0)


def has_all_amenities(row: Any, amenities: Iterable[str]) -> bool:
    """Conjunctive subset check of selected tags against the row's tags."""
    required = set(amenities)
    if not required:
        return True
    return required.issubset(set(row.amenities or []))


def sort_results(rows: List[Any], sort_key: SortKey) -> List[Any]:
    """
    Apply client-side ordering on top of the newest-first base order.
    Sorting is stable, so ties keep newest-first order.
    """
    if sort_key is SortKey.PRICE_LOW:
        return sorted(rows, key=effective_price)
    if sort_key is SortKey.PRICE_HIGH:
        return sorted(rows, key=effective_price, reverse=True)
    if sort_key is SortKey.BEDROOMS:
        return sorted(rows, key=lambda row: row.bedrooms or 0, reverse=True)
    return list(rows)


class PropertyQueryBuilder:
    """Builds a QuerySpec for the public property search from filter state."""

    @staticmethod
    def public_conditions() -> List:
        return [
            Property.status == PropertyStatus.PUBLISHED,
            Property.is_active.is_(True),
        ]

    @staticmethod
    def text_condition(query: str):
        """OR-combined substring match across the text search columns."""
        return or_(*(contains(column, query) for column in TEXT_SEARCH_COLUMNS))

    @classmethod
    def build(cls, query: str, filters: FilterState, now: Optional[datetime] = None) -> QuerySpec:
        """
        Build the search query.

        Args:
            query: Free-text query, may be empty
            filters: Active filter state
            now: Reference time for age buckets (defaults to the current time)

        Returns:
            QuerySpec with predicates and newest-first base ordering
        """
        conditions = cls.public_conditions()

        query = (query or "").strip()
        if query:
            conditions.append(cls.text_condition(query))

        if filters.listing_type is not ListingFilter.ALL:
            selected = ListingType(filters.listing_type.value)
            conditions.append(Property.listing_type.in_(list(dict.fromkeys([selected, ListingType.BOTH]))))

        if filters.location:
            conditions.append(contains(Property.specific_location, filters.location))

        conditions.extend(cls._price_conditions(filters))

        if filters.bedrooms is not None:
            conditions.append(Property.bedrooms >= filters.bedrooms)
        if filters.beds is not None:
            conditions.append(Property.beds >= filters.beds)
        if filters.bathrooms is not None:
            conditions.append(Property.bathrooms >= filters.bathrooms)
        if filters.max_guests is not None:
            conditions.append(Property.max_guests >= filters.max_guests)

        has_video = filters.has_video.as_bool()
        if has_video is True:
            conditions.append(and_(Property.video_url.is_not(None), Property.video_url != ""))
        elif has_video is False:
            conditions.append(or_(Property.video_url.is_(None), Property.video_url == ""))

        is_featured = filters.is_featured.as_bool()
        if is_featured is not None:
            conditions.append(Property.is_featured.is_(is_featured))

        if filters.property_age is not AgeBucket.ALL:
            created_after, created_before = age_bounds(
                filters.property_age, now or datetime.now(timezone.utc)
            )
            if created_after is not None:
                conditions.append(Property.created_at >= created_after)
            if created_before is not None:
                conditions.append(Property.created_at <= created_before)

        return QuerySpec(
            where=conditions,
            order_by=[Property.created_at.desc()],
        )

    @staticmethod
    def _price_conditions(filters: FilterState) -> List:
        if filters.min_price is None and filters.max_price is None:
            return []

        # Sale listings are priced by sale_price; everything else by rental_price
        column = Property.sale_price if filters.listing_type is ListingFilter.SALE else Property.rental_price
        conditions = []
        if filters.min_price is not None:
            conditions.append(column >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(column <= filters.max_price)
        return conditions


class PropertyRepository:
    """
    Property data access on top of the Storage Gateway.
    Provides search, slug lookups and aggregate views for filter UIs.
    """

    TABLE = "properties"

    def __init__(self, gateway: StorageGateway):
        self.gateway = gateway

    async def search(
        self,
        query: str,
        filters: FilterState,
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[Property]:
        """
        Run the public property search.

        Args:
            query: Free-text query
            filters: Active filter state
            now: Reference time for age buckets
            limit: Optional cap applied after in-memory filtering

        Returns:
            Matching properties in the requested order
        """
        spec = PropertyQueryBuilder.build(query, filters, now)
        rows = await self.gateway.select(self.TABLE, spec)

        if filters.amenities:
            rows = [row for row in rows if has_all_amenities(row, filters.amenities)]

        rows = sort_results(rows, filters.sort_by)
        if limit is not None:
            rows = rows[:limit]

        logger.debug(f"Property search for {query!r} returned {len(rows)} results")
        return rows

    async def suggest(self, query: str, limit: int) -> List[Property]:
        """Direct text matches, featured first then newest."""
        spec = QuerySpec(
            where=PropertyQueryBuilder.public_conditions() + [PropertyQueryBuilder.text_condition(query)],
            order_by=[Property.is_featured.desc(), Property.created_at.desc()],
            limit=limit,
        )
        return await self.gateway.select(self.TABLE, spec)

    async def suggest_by_category(self, query: str, limit: int) -> List[Property]:
        """Properties whose active category name or description matches the query."""
        matching_categories = (
            select(Category.id)
            .where(Category.is_active.is_(True))
            .where(or_(contains(Category.name, query), contains(Category.description, query)))
        )
        spec = QuerySpec(
            where=PropertyQueryBuilder.public_conditions() + [Property.category_id.in_(matching_categories)],
            order_by=[Property.is_featured.desc(), Property.created_at.desc()],
            limit=limit,
        )
        return await self.gateway.select(self.TABLE, spec)

    async def list_public(self) -> List[Property]:
        spec = QuerySpec(where=PropertyQueryBuilder.public_conditions())
        return await self.gateway.select(self.TABLE, spec)

    async def get_by_slug(self, slug: str, public_only: bool = True) -> Optional[Property]:
        """Fetch a property by slug, optionally restricted to published active rows."""
        conditions = [Property.slug == slug]
        if public_only:
            conditions.extend(PropertyQueryBuilder.public_conditions())
        rows = await self.gateway.select(self.TABLE, QuerySpec(where=conditions, limit=1))
        return rows[0] if rows else None

    async def slug_exists(self, slug: str) -> bool:
        return await self.gateway.count(self.TABLE, QuerySpec(where=[Property.slug == slug])) > 0

    async def list_admin(
        self,
        status: Optional[PropertyStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[Property], int]:
        """All properties regardless of status, newest first, with total count."""
        conditions = [Property.status == status] if status else []
        spec = QuerySpec(
            where=conditions,
            order_by=[Property.created_at.desc()],
            offset=skip,
            limit=limit,
        )
        rows = await self.gateway.select(self.TABLE, spec)
        total = await self.gateway.count(self.TABLE, QuerySpec(where=list(conditions)))
        return rows, total
