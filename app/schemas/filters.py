"""
Search filter state and its URL query-parameter encoding.
Every filter dimension maps to one query parameter; default values are never
written, so URLs stay minimal and hydrate back to the same state.
"""

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from typing import Any, Dict, List, Mapping, Optional, Tuple
from decimal import Decimal, InvalidOperation
from urllib.parse import urlencode, parse_qsl
import enum
import logging

logger = logging.getLogger(__name__)


class ListingFilter(str, enum.Enum):
    """Listing-type selector; ALL applies no listing filter."""
    ALL = "all"
    RENTAL = "rental"
    SALE = "sale"
    BOTH = "both"


class TriState(str, enum.Enum):
    """Boolean filter with a no-filter option."""
    ALL = "all"
    YES = "yes"
    NO = "no"

    def as_bool(self) -> Optional[bool]:
        if self is TriState.ALL:
            return None
        return self is TriState.YES


class AgeBucket(str, enum.Enum):
    """Property age relative to creation time."""
    ALL = "all"
    NEW = "new"
    RECENT = "recent"
    OLDER = "older"


class SortKey(str, enum.Enum):
    """Client-side result ordering."""
    NEWEST = "newest"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    BEDROOMS = "bedrooms"


# Field name -> URL query parameter name
QUERY_PARAM_NAMES: Dict[str, str] = {
    "listing_type": "type",
    "location": "location",
    "min_price": "minPrice",
    "max_price": "maxPrice",
    "bedrooms": "bedrooms",
    "beds": "beds",
    "bathrooms": "bathrooms",
    "max_guests": "maxGuests",
    "amenities": "amenities",
    "has_video": "hasVideo",
    "is_featured": "isFeatured",
    "property_age": "propertyAge",
    "sort_by": "sortBy",
}

SEARCH_QUERY_PARAM = "q"

# Upper bounds keep hand-edited URLs inside what the database can bind
MAX_COUNT_FILTER = 10_000
MAX_PRICE_FILTER = Decimal("1000000000000")


def _format_decimal(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


class FilterState(BaseModel):
    """
    Closed record of all active search filter selections.
    Every field has an explicit default meaning "no filter".
    """

    listing_type: ListingFilter = Field(
        ListingFilter.ALL,
        description="Listing type; a specific type also matches 'both' listings",
        example="rental"
    )

    location: str = Field(
        "",
        max_length=255,
        description="Case-insensitive substring of the property location",
        example="Watamu"
    )

    min_price: Optional[Decimal] = Field(
        None,
        ge=0,
        le=MAX_PRICE_FILTER,
        description="Minimum price (sale price for sale listings, rental price otherwise)",
        example=400000
    )

    max_price: Optional[Decimal] = Field(
        None,
        ge=0,
        le=MAX_PRICE_FILTER,
        description="Maximum price (sale price for sale listings, rental price otherwise)",
        example=600000
    )

    bedrooms: Optional[int] = Field(
        None, ge=0, le=MAX_COUNT_FILTER, description="Minimum number of bedrooms", example=3
    )
    beds: Optional[int] = Field(
        None, ge=0, le=MAX_COUNT_FILTER, description="Minimum number of beds", example=4
    )
    bathrooms: Optional[int] = Field(
        None, ge=0, le=MAX_COUNT_FILTER, description="Minimum number of bathrooms", example=2
    )
    max_guests: Optional[int] = Field(
        None, ge=0, le=MAX_COUNT_FILTER, description="Minimum guest capacity", example=6
    )

    amenities: List[str] = Field(
        default_factory=list,
        description="Amenity tags that must all be present",
        example=["Pool", "WiFi"]
    )

    has_video: TriState = Field(TriState.ALL, description="Video presence filter")
    is_featured: TriState = Field(TriState.ALL, description="Featured flag filter")
    property_age: AgeBucket = Field(AgeBucket.ALL, description="Creation-age bucket")
    sort_by: SortKey = Field(SortKey.NEWEST, description="Result ordering")

    @field_validator("location")
    @classmethod
    def strip_location(cls, v):
        return v.strip()

    @field_validator("amenities")
    @classmethod
    def normalise_amenities(cls, v):
        """Drop blanks and duplicates, keeping selection order."""
        result = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in result:
                result.append(tag)
        return result

    @model_validator(mode="after")
    def validate_price_range(self):
        if self.min_price is not None and self.max_price is not None:
            if self.min_price > self.max_price:
                raise ValueError("Minimum price cannot be greater than maximum price")
        return self

    @property
    def has_active_filters(self) -> bool:
        """True when any dimension other than sort order differs from its default."""
        defaults = FilterState()
        return any(
            getattr(self, name) != getattr(defaults, name)
            for name in QUERY_PARAM_NAMES
            if name != "sort_by"
        )

    def with_changes(self, **changes: Any) -> "FilterState":
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return FilterState.model_validate(data)

    def toggle_amenity(self, amenity: str) -> "FilterState":
        amenities = list(self.amenities)
        if amenity in amenities:
            amenities.remove(amenity)
        else:
            amenities.append(amenity)
        return self.with_changes(amenities=amenities)

    def to_query_params(self, query: str = "") -> Dict[str, str]:
        """
        Serialise to URL query parameters, omitting defaults.

        Args:
            query: Committed free-text search query (written as 'q')

        Returns:
            Ordered mapping of parameter name to value
        """
        params: Dict[str, str] = {}
        if query:
            params[SEARCH_QUERY_PARAM] = query

        defaults = FilterState()
        for name, param in QUERY_PARAM_NAMES.items():
            value = getattr(self, name)
            if value == getattr(defaults, name):
                continue
            if isinstance(value, enum.Enum):
                params[param] = value.value
            elif isinstance(value, Decimal):
                params[param] = _format_decimal(value)
            elif isinstance(value, list):
                params[param] = ",".join(value)
            else:
                params[param] = str(value)
        return params

    def to_query_string(self, query: str = "") -> str:
        return urlencode(self.to_query_params(query))

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> "FilterState":
        """
        Hydrate filter state from URL query parameters.

        Absent parameters take their defaults. Unparseable values are ignored
        and logged rather than rejected, so a hand-edited URL still renders.
        """
        data: Dict[str, Any] = {}
        for name, param in QUERY_PARAM_NAMES.items():
            raw = params.get(param)
            if raw is None or raw == "":
                continue
            field_info = cls.model_fields[name]
            try:
                data[name] = _coerce_param(name, field_info.annotation, raw)
            except (ValueError, InvalidOperation):
                logger.info(f"Ignoring invalid search parameter {param}={raw!r}")

        while True:
            try:
                return cls.model_validate(data)
            except ValidationError as e:
                rejected = {error["loc"][0] for error in e.errors() if error.get("loc")}
                if not rejected:
                    # Model-level failure is the contradictory price range
                    rejected = {"min_price", "max_price"}
                rejected &= set(data)
                if not rejected:
                    raise
                logger.info(f"Ignoring invalid search parameters: {sorted(rejected)}")
                for name in rejected:
                    data.pop(name)


def _coerce_param(name: str, annotation: Any, raw: str) -> Any:
    if name == "amenities":
        return [tag for tag in raw.split(",") if tag.strip()]
    if name in ("min_price", "max_price"):
        value = Decimal(raw)
        if not value.is_finite() or value < 0 or value > MAX_PRICE_FILTER:
            raise ValueError(raw)
        return value
    if name in ("bedrooms", "beds", "bathrooms", "max_guests"):
        value = int(raw)
        if value < 0 or value > MAX_COUNT_FILTER:
            raise ValueError(raw)
        return value
    if isinstance(annotation, type) and issubclass(annotation, enum.Enum):
        return annotation(raw)
    return raw


def parse_search_params(params: Mapping[str, str]) -> Tuple[str, FilterState]:
    """Split URL parameters into the committed query string and filter state."""
    query = (params.get(SEARCH_QUERY_PARAM) or "").strip()
    return query, FilterState.from_query_params(params)


def parse_query_string(query_string: str) -> Tuple[str, FilterState]:
    """Hydrate from a raw URL query string (with or without a leading '?')."""
    return parse_search_params(dict(parse_qsl(query_string.lstrip("?"))))
