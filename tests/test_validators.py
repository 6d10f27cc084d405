"""
Tests for validation utilities: slugs, amenity parsing and form JSON parsing.
"""

import pytest

from app.schemas.content import CategoryCreate
from app.utils.exceptions import ValidationError
from app.utils.validators import ValidationUtils, parse_form_model


class TestSlugGeneration:
    """Test slug derivation from titles."""

    @pytest.mark.parametrize("text,expected", [
        ("  Ocean View!! Villa  ", "ocean-view-villa"),
        ("Beach -- House", "beach-house"),
        ("Kilifi 3-Bedroom Cottage", "kilifi-3-bedroom-cottage"),
        ("--Leading and trailing--", "leading-and-trailing"),
        ("Café & Spa", "caf-spa"),
        ("!!!", ""),
    ])
    def test_generate_slug(self, text, expected):
        assert ValidationUtils.generate_slug(text) == expected

    @pytest.mark.asyncio
    async def test_unique_slug_appends_suffix(self):
        taken = {"ocean-view-villa", "ocean-view-villa-2"}

        async def slug_exists(slug):
            return slug in taken

        slug = await ValidationUtils.generate_unique_slug("Ocean View Villa", slug_exists)

        assert slug == "ocean-view-villa-3"

    @pytest.mark.asyncio
    async def test_unique_slug_fallback_for_empty_title(self):
        async def slug_exists(slug):
            return False

        assert await ValidationUtils.generate_unique_slug("???", slug_exists, fallback="property") == "property"


class TestAmenityParsing:
    """Test amenity tag normalisation."""

    def test_comma_separated_string(self):
        assert ValidationUtils.parse_amenities("Pool, WiFi,,Pool ") == ["Pool", "WiFi"]

    def test_list_and_none(self):
        assert ValidationUtils.parse_amenities([" Parking ", "Garden"]) == ["Parking", "Garden"]
        assert ValidationUtils.parse_amenities(None) == []


class TestFormParsing:
    """Test JSON documents sent as multipart form fields."""

    def test_valid_document(self):
        category = parse_form_model(CategoryCreate, '{"name": "Beachfront"}')
        assert category.name == "Beachfront"

    def test_malformed_json_is_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_form_model(CategoryCreate, "{not json")

        assert exc_info.value.status_code == 422

    def test_missing_fields_listed(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_form_model(CategoryCreate, None)

        fields = [error["field"] for error in exc_info.value.field_errors]
        assert fields == ["name"]
