"""
Tests for search filter state and its URL encoding.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.schemas.filters import (
    AgeBucket,
    FilterState,
    ListingFilter,
    SortKey,
    TriState,
    parse_query_string,
)


class TestQueryParams:
    """Test serialisation to and from URL query parameters."""

    def test_defaults_write_nothing(self):
        assert FilterState().to_query_params() == {}
        assert FilterState().to_query_string() == ""

    def test_only_changed_dimensions_written(self):
        filters = FilterState(bedrooms=3, sort_by=SortKey.PRICE_LOW)

        assert filters.to_query_params() == {"bedrooms": "3", "sortBy": "price_low"}

    def test_round_trip(self):
        filters = FilterState(bedrooms=3, sort_by=SortKey.PRICE_LOW)

        query, hydrated = parse_query_string(filters.to_query_string())

        assert query == ""
        assert hydrated == filters

    def test_round_trip_all_dimensions(self):
        filters = FilterState(
            listing_type=ListingFilter.SALE,
            location="Watamu",
            min_price=Decimal("400000"),
            max_price=Decimal("600000.50"),
            bedrooms=3,
            beds=4,
            bathrooms=2,
            max_guests=6,
            amenities=["Pool", "Sea View"],
            has_video=TriState.YES,
            is_featured=TriState.NO,
            property_age=AgeBucket.RECENT,
            sort_by=SortKey.BEDROOMS,
        )

        query, hydrated = parse_query_string("?" + filters.to_query_string("beach house"))

        assert query == "beach house"
        assert hydrated == filters

    def test_query_written_first(self):
        filters = FilterState(listing_type=ListingFilter.RENTAL)

        assert filters.to_query_string("villa") == "q=villa&type=rental"

    def test_prices_written_without_trailing_zeros(self):
        filters = FilterState(min_price=Decimal("1500.00"), max_price=Decimal("2500.50"))

        assert filters.to_query_params() == {"minPrice": "1500", "maxPrice": "2500.5"}

    def test_invalid_values_ignored(self):
        query, filters = parse_query_string("bedrooms=abc&type=castle&minPrice=-5&beds=2&sortBy=random")

        assert filters.bedrooms is None
        assert filters.listing_type is ListingFilter.ALL
        assert filters.min_price is None
        assert filters.sort_by is SortKey.NEWEST
        assert filters.beds == 2

    def test_contradictory_price_bounds_dropped(self):
        _, filters = parse_query_string("minPrice=500&maxPrice=100&bedrooms=2")

        assert filters.min_price is None
        assert filters.max_price is None
        assert filters.bedrooms == 2

    def test_overlong_location_dropped_other_filters_kept(self):
        _, filters = parse_query_string("location=" + "x" * 300 + "&bedrooms=2&type=sale")

        assert filters.location == ""
        assert filters.bedrooms == 2
        assert filters.listing_type is ListingFilter.SALE

    def test_out_of_range_numbers_ignored(self):
        _, filters = parse_query_string(
            "bedrooms=9999999999999999999999999&maxGuests=10001&minPrice=1e40&beds=3"
        )

        assert filters.bedrooms is None
        assert filters.max_guests is None
        assert filters.min_price is None
        assert filters.beds == 3

    def test_amenities_split_and_deduplicated(self):
        _, filters = parse_query_string("amenities=Pool,,WiFi,Pool")

        assert filters.amenities == ["Pool", "WiFi"]


class TestFilterMutations:
    """Test immutable filter updates."""

    def test_sort_alone_is_not_an_active_filter(self):
        assert not FilterState(sort_by=SortKey.PRICE_HIGH).has_active_filters
        assert FilterState(location="Kilifi").has_active_filters

    def test_toggle_amenity(self):
        filters = FilterState().toggle_amenity("Pool").toggle_amenity("WiFi")
        assert filters.amenities == ["Pool", "WiFi"]

        filters = filters.toggle_amenity("Pool")
        assert filters.amenities == ["WiFi"]

    def test_with_changes_validates(self):
        with pytest.raises(PydanticValidationError):
            FilterState().with_changes(min_price=10, max_price=5)

    def test_with_changes_returns_new_state(self):
        original = FilterState()

        changed = original.with_changes(bedrooms=2, listing_type="sale")

        assert original.bedrooms is None
        assert changed.bedrooms == 2
        assert changed.listing_type is ListingFilter.SALE
