"""
Validation utilities for the Realty Search API.
Provides slug generation, amenity parsing and pydantic error conversion.
"""

import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar, Union
from pydantic import BaseModel, ValidationError as PydanticValidationError

from app.utils.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)


class ValidationUtils:
    """
    Utility class for common validation operations.
    Provides reusable validation methods for slugs and tags.
    """

    _STRIP_PATTERN = re.compile(r'[^a-z0-9\s-]')
    _WHITESPACE_PATTERN = re.compile(r'\s+')
    _HYPHEN_PATTERN = re.compile(r'-+')

    @staticmethod
    def generate_slug(text: str) -> str:
        """
        Build a URL-safe slug from free text.

        Lower-cases, strips everything that is not a letter, digit, space or
        hyphen, turns whitespace runs into a hyphen, collapses repeated hyphens
        and trims hyphens from both ends.

        Args:
            text: Source text (usually a title or name)

        Returns:
            Slug string, possibly empty
        """
        slug = (text or "").lower()
        slug = ValidationUtils._STRIP_PATTERN.sub("", slug)
        slug = ValidationUtils._WHITESPACE_PATTERN.sub("-", slug.strip())
        slug = ValidationUtils._HYPHEN_PATTERN.sub("-", slug)
        return slug.strip("-")

    @staticmethod
    async def generate_unique_slug(
        text: str,
        slug_exists: Callable[[str], Awaitable[bool]],
        fallback: str = "item"
    ) -> str:
        """
        Generate a slug and append a numeric suffix until it is unused.

        Args:
            text: Source text
            slug_exists: Async predicate reporting whether a slug is taken
            fallback: Base slug used when the text yields an empty slug

        Returns:
            Unused slug
        """
        base = ValidationUtils.generate_slug(text) or fallback
        candidate = base
        suffix = 2
        while await slug_exists(candidate):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    @staticmethod
    def parse_amenities(value: Union[None, str, List[str]]) -> List[str]:
        """
        Normalise amenity tags given as a comma-separated string or a list.

        Blank entries are dropped and duplicates removed, first occurrence wins.
        """
        if value is None:
            return []
        if isinstance(value, str):
            items = value.split(",")
        else:
            items = list(value)

        seen = []
        for item in items:
            tag = str(item).strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


def handle_pydantic_validation_error(exc: PydanticValidationError) -> ValidationError:
    """
    Convert Pydantic validation error to custom ValidationError.

    Args:
        exc: Pydantic validation error

    Returns:
        Custom ValidationError instance
    """
    field_errors: List[Dict[str, Any]] = []

    for error in exc.errors():
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        field_errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"],
        })

    return ValidationError(
        detail="Request validation failed",
        field_errors=field_errors
    )


def parse_form_model(model: Type[M], raw: Optional[str]) -> M:
    """
    Validate a JSON document sent as a multipart form field.

    Raises:
        ValidationError: If the JSON is malformed or fails model validation
    """
    try:
        return model.model_validate_json(raw or "{}")
    except PydanticValidationError as e:
        raise handle_pydantic_validation_error(e)
