"""
Tests for the public property search, suggestions and filter aggregates.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.models.property import ListingType, Property, PropertyStatus
from app.repositories.gateway import QuerySpec, StorageGateway
from app.schemas.filters import AgeBucket, FilterState, ListingFilter, SortKey, TriState
from app.services.search import SearchService
from app.utils.exceptions import PropertyNotFoundError, StorageError

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class BrokenGateway(StorageGateway):
    """Gateway whose reads always fail."""

    async def select(self, table, spec=None):
        raise StorageError(f"select {table}", "connection refused")


def slugs(rows):
    return [row.slug for row in rows]


@pytest.fixture
async def listings(make_property):
    await make_property(slug="rental", listing_type=ListingType.RENTAL, rental_price=Decimal("20000"))
    await make_property(slug="sale", listing_type=ListingType.SALE, rental_price=None, sale_price=Decimal("500000"))
    await make_property(
        slug="both", listing_type=ListingType.BOTH, rental_price=Decimal("30000"), sale_price=Decimal("450000")
    )


@pytest.fixture
async def priced(make_property):
    await make_property(slug="mid", rental_price=Decimal("20000"), bedrooms=3, created_at=NOW - timedelta(days=3))
    await make_property(slug="cheap", rental_price=Decimal("5000"), bedrooms=1, created_at=NOW - timedelta(days=2))
    await make_property(
        slug="sale", listing_type=ListingType.SALE, rental_price=None, sale_price=Decimal("900000"),
        bedrooms=5, created_at=NOW - timedelta(days=1)
    )


class TestListingTypeFilter:
    """Test rental/sale/both semantics."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("listing_type,expected", [
        (ListingFilter.ALL, {"rental", "sale", "both"}),
        (ListingFilter.RENTAL, {"rental", "both"}),
        (ListingFilter.SALE, {"sale", "both"}),
        (ListingFilter.BOTH, {"both"}),
    ])
    async def test_specific_type_also_matches_both(
        self, search_service: SearchService, listings, listing_type, expected
    ):
        rows = await search_service.search_properties("", FilterState(listing_type=listing_type))
        assert set(slugs(rows)) == expected

    @pytest.mark.asyncio
    async def test_sale_price_range_uses_sale_price(self, search_service: SearchService, listings):
        filters = FilterState(
            listing_type=ListingFilter.SALE, min_price=Decimal("400000"), max_price=Decimal("600000")
        )

        rows = await search_service.search_properties("", filters)

        assert set(slugs(rows)) == {"sale", "both"}

    @pytest.mark.asyncio
    async def test_rental_price_range_uses_rental_price(self, search_service: SearchService, listings):
        filters = FilterState(
            listing_type=ListingFilter.RENTAL, min_price=Decimal("25000"), max_price=Decimal("40000")
        )

        rows = await search_service.search_properties("", filters)

        assert slugs(rows) == ["both"]

    @pytest.mark.asyncio
    async def test_unfiltered_price_range_uses_rental_price(self, search_service: SearchService, listings):
        rows = await search_service.search_properties("", FilterState(max_price=Decimal("25000")))

        assert slugs(rows) == ["rental"]


class TestAttributeFilters:
    """Test text, location, capacity, amenity, flag and age filters."""

    @pytest.mark.asyncio
    async def test_text_matches_any_search_field(self, search_service: SearchService, make_property):
        await make_property(slug="by-title", title="Ocean Breeze Villa")
        await make_property(slug="by-description", description="Steps from the OCEAN")
        await make_property(slug="by-keyword", focus_keyword="ocean front")
        await make_property(slug="by-type", property_type_text="Oceanside cottage")
        await make_property(slug="unrelated", title="Forest Cabin", specific_location="Nanyuki")

        rows = await search_service.search_properties("ocean", FilterState())

        assert set(slugs(rows)) == {"by-title", "by-description", "by-keyword", "by-type"}

    @pytest.mark.asyncio
    async def test_wildcards_in_query_are_literal(self, search_service: SearchService, make_property):
        await make_property(slug="plain", title="Garden Flat")

        assert await search_service.search_properties("100%", FilterState()) == []
        assert await search_service.search_properties("_", FilterState()) == []

    @pytest.mark.asyncio
    async def test_location_substring(self, search_service: SearchService, make_property):
        await make_property(slug="watamu", specific_location="Watamu, Kilifi County")
        await make_property(slug="diani", specific_location="Diani Beach")

        rows = await search_service.search_properties("", FilterState(location="kilifi"))

        assert slugs(rows) == ["watamu"]

    @pytest.mark.asyncio
    async def test_capacity_minimums(self, search_service: SearchService, make_property):
        await make_property(slug="small", bedrooms=1, beds=1, bathrooms=1, max_guests=2)
        await make_property(slug="large", bedrooms=4, beds=6, bathrooms=3, max_guests=10)

        filters = FilterState(bedrooms=3, beds=5, bathrooms=2, max_guests=8)
        rows = await search_service.search_properties("", filters)

        assert slugs(rows) == ["large"]

    @pytest.mark.asyncio
    async def test_amenities_are_conjunctive(self, search_service: SearchService, make_property):
        await make_property(slug="full", amenities=["Pool", "WiFi", "Parking"])
        await make_property(slug="pool-only", amenities=["Pool"])

        rows = await search_service.search_properties("", FilterState(amenities=["Pool", "WiFi"]))

        assert slugs(rows) == ["full"]

    @pytest.mark.asyncio
    async def test_video_and_featured_flags(self, search_service: SearchService, make_property):
        await make_property(slug="video", video_url="https://video.example/tour", is_featured=True)
        await make_property(slug="empty-video", video_url="")
        await make_property(slug="no-video")

        with_video = await search_service.search_properties("", FilterState(has_video=TriState.YES))
        without_video = await search_service.search_properties("", FilterState(has_video=TriState.NO))
        featured = await search_service.search_properties("", FilterState(is_featured=TriState.YES))

        assert slugs(with_video) == ["video"]
        assert set(slugs(without_video)) == {"empty-video", "no-video"}
        assert slugs(featured) == ["video"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bucket,expected", [
        (AgeBucket.NEW, ["fresh"]),
        (AgeBucket.RECENT, ["recent"]),
        (AgeBucket.OLDER, ["old"]),
        (AgeBucket.ALL, ["fresh", "recent", "old"]),
    ])
    async def test_age_buckets(self, search_service: SearchService, make_property, bucket, expected):
        await make_property(slug="fresh", created_at=NOW - timedelta(days=5))
        await make_property(slug="recent", created_at=NOW - timedelta(days=60))
        await make_property(slug="old", created_at=NOW - timedelta(days=400))

        rows = await search_service.search_properties("", FilterState(property_age=bucket), now=NOW)

        assert slugs(rows) == expected

    @pytest.mark.asyncio
    async def test_only_published_active_properties(self, search_service: SearchService, make_property):
        await make_property(slug="live", title="Coral Villa")
        await make_property(slug="draft", title="Coral Draft", status=PropertyStatus.DRAFT)
        await make_property(slug="archived", title="Coral Archive", status=PropertyStatus.ARCHIVED)
        await make_property(slug="inactive", title="Coral Hidden", is_active=False)

        rows = await search_service.search_properties("coral", FilterState())

        assert slugs(rows) == ["live"]


class TestSorting:
    """Test client-side ordering."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("sort_key,expected", [
        (SortKey.NEWEST, ["sale", "cheap", "mid"]),
        (SortKey.PRICE_LOW, ["cheap", "mid", "sale"]),
        (SortKey.PRICE_HIGH, ["sale", "mid", "cheap"]),
        (SortKey.BEDROOMS, ["sale", "mid", "cheap"]),
    ])
    async def test_sort_orders(self, search_service: SearchService, priced, sort_key, expected):
        rows = await search_service.search_properties("", FilterState(sort_by=sort_key))
        assert slugs(rows) == expected

    @pytest.mark.asyncio
    async def test_ties_keep_newest_first(self, search_service: SearchService, make_property):
        await make_property(slug="older", bedrooms=2, created_at=NOW - timedelta(days=9))
        await make_property(slug="newer", bedrooms=2, created_at=NOW - timedelta(days=1))

        rows = await search_service.search_properties("", FilterState(sort_by=SortKey.BEDROOMS))

        assert slugs(rows) == ["newer", "older"]


class TestSearchResponse:
    """Test response shaping and degraded storage."""

    @pytest.mark.asyncio
    async def test_storage_failure_returns_empty_results(self, engine, object_store, settings):
        service = SearchService(BrokenGateway(engine, object_store, settings), settings)

        response = await service.search("villa", FilterState())

        assert response.results == []
        assert response.total == 0
        assert response.empty_state.message == 'No properties found for "villa"'

    @pytest.mark.asyncio
    async def test_driver_bind_error_returns_empty_results(self, search_service: SearchService, make_property):
        await make_property()
        unbindable = FilterState.model_construct(**{**FilterState().model_dump(), "bedrooms": 10 ** 30})

        assert await search_service.search_properties("", unbindable) == []

    @pytest.mark.asyncio
    async def test_gateway_reports_bind_overflow_as_storage_error(self, gateway: StorageGateway):
        with pytest.raises(StorageError):
            await gateway.select("properties", QuerySpec(where=[Property.bedrooms >= 10 ** 30]))

    @pytest.mark.asyncio
    async def test_empty_state_with_filters_offers_clearing(self, search_service: SearchService):
        response = await search_service.search("villa", FilterState(bedrooms=9))

        assert response.empty_state.message == "No properties match your filters"
        assert response.empty_state.can_clear_filters
        assert response.empty_state.clear_filters_query == "q=villa"
        assert response.query_string == "q=villa&bedrooms=9"

    @pytest.mark.asyncio
    async def test_empty_catalogue_message(self, search_service: SearchService):
        response = await search_service.search("", FilterState())
        assert response.empty_state.message == "No properties available yet"

    @pytest.mark.asyncio
    async def test_results_carry_display_price_and_urls(self, search_service: SearchService, make_property):
        await make_property(
            slug="sale-home", listing_type=ListingType.SALE, sale_price=Decimal("750000"),
            hero_image_path="properties/hero/x/1-front.jpg"
        )

        response = await search_service.search("", FilterState())

        result = response.results[0]
        assert result.display_price == Decimal("750000")
        assert result.hero_image_url.endswith("/property-images/properties/hero/x/1-front.jpg")
        assert response.empty_state is None

    @pytest.mark.asyncio
    async def test_public_property_hides_drafts(self, search_service: SearchService, make_property):
        await make_property(slug="draft-home", status=PropertyStatus.DRAFT)

        with pytest.raises(PropertyNotFoundError):
            await search_service.get_public_property("draft-home")


class TestSuggestions:
    """Test autocomplete suggestions."""

    @pytest.mark.asyncio
    async def test_short_queries_return_nothing(self, search_service: SearchService, make_property):
        await make_property(title="Villa Rosa")

        assert await search_service.get_search_suggestions("vi") == []
        assert await search_service.get_search_suggestions("  vi  ") == []

    @pytest.mark.asyncio
    async def test_featured_first_and_limited(self, search_service: SearchService, make_property):
        for n in range(6):
            await make_property(slug=f"villa-{n}", title=f"Villa {n}", created_at=NOW - timedelta(days=n))
        await make_property(slug="featured-villa", title="Villa Star", is_featured=True,
                            created_at=NOW - timedelta(days=30))

        rows = await search_service.get_search_suggestions("villa")

        assert len(rows) == 5
        assert slugs(rows) == ["featured-villa", "villa-0", "villa-1", "villa-2", "villa-3"]

    @pytest.mark.asyncio
    async def test_category_matches_fill_remaining_slots(
        self, search_service: SearchService, make_property, make_category
    ):
        beach = await make_category(name="Beachfront", description="Homes on the sand")
        await make_category(name="Beach Retired", is_active=False)
        await make_property(slug="direct", title="Beach Cottage", category_id=beach.id)
        await make_property(slug="via-category", title="Sunset Home", category_id=beach.id)
        await make_property(slug="elsewhere", title="Mountain Lodge")

        rows = await search_service.get_search_suggestions("beach")

        assert slugs(rows) == ["direct", "via-category"]

    @pytest.mark.asyncio
    async def test_category_matches_capped_at_three(
        self, search_service: SearchService, make_property, make_category
    ):
        lodges = await make_category(name="Safari Lodges")
        for n in range(5):
            await make_property(slug=f"lodge-{n}", title=f"Camp {n}", category_id=lodges.id)

        rows = await search_service.get_search_suggestions("safari")

        assert len(rows) == 3


class TestFilterAggregates:
    """Test amenity listing and value ranges."""

    @pytest.mark.asyncio
    async def test_available_amenities_sorted_and_distinct(self, search_service: SearchService, make_property):
        await make_property(amenities=["WiFi", "Pool"])
        await make_property(amenities=["Pool", "Air Conditioning"])
        await make_property(amenities=["Helipad"], status=PropertyStatus.DRAFT)

        assert await search_service.get_available_amenities() == ["Air Conditioning", "Pool", "WiFi"]

    @pytest.mark.asyncio
    async def test_stats_ignore_missing_and_zero_values(self, search_service: SearchService, make_property):
        await make_property(rental_price=Decimal("8000"), bedrooms=2, beds=3, max_guests=4)
        await make_property(
            listing_type=ListingType.SALE, rental_price=Decimal("0"), sale_price=Decimal("650000"),
            bedrooms=5, beds=0, max_guests=None
        )

        stats = await search_service.get_property_stats()

        assert (stats.price_range.min, stats.price_range.max) == (8000, 650000)
        assert (stats.bedroom_range.min, stats.bedroom_range.max) == (2, 5)
        assert (stats.bed_range.min, stats.bed_range.max) == (3, 3)
        assert (stats.guest_range.min, stats.guest_range.max) == (4, 4)

    @pytest.mark.asyncio
    async def test_stats_defaults_for_empty_catalogue(self, search_service: SearchService):
        stats = await search_service.get_property_stats()

        assert (stats.price_range.min, stats.price_range.max) == (0, 100000)
        assert (stats.bedroom_range.min, stats.bedroom_range.max) == (1, 10)
        assert (stats.bed_range.min, stats.bed_range.max) == (1, 10)
        assert (stats.guest_range.min, stats.guest_range.max) == (1, 20)
