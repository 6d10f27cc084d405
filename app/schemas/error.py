"""
Error envelope schemas, used to document error responses in OpenAPI.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


class ErrorDetail(BaseModel):
    """One failed field of a validation error."""

    field: Optional[str] = Field(None, examples=["rental_price"])
    message: str = Field(..., examples=["Input should be greater than or equal to 0"])
    type: Optional[str] = Field(None, examples=["greater_than_equal"])
    input: Optional[Any] = Field(None, examples=[-100])


class ErrorBody(BaseModel):
    code: str = Field(..., examples=["NOT_FOUND"])
    message: str = Field(..., examples=["Property not found with ID: ocean-view-villa"])
    timestamp: str = Field(..., description="UTC timestamp, ISO 8601")
    request_id: Optional[str] = Field(None, description="Echo of the X-Request-ID header")
    details: Optional[List[ErrorDetail]] = None


class ErrorEnvelope(BaseModel):
    """Wrapper every error response uses."""

    error: ErrorBody


# status -> (summary, sample code, sample message)
_DOCUMENTED_ERRORS = {
    400: ("Malformed request or rejected upload", "BAD_REQUEST", "Category not found: 7"),
    401: ("Missing or invalid bearer token", "UNAUTHORIZED", "Authentication token required"),
    403: ("Caller is not an admin", "FORBIDDEN", "Insufficient permissions to manage content"),
    404: ("No such resource", "NOT_FOUND", "Property not found with ID: ocean-view-villa"),
    409: ("Integrity constraint violated", "INTEGRITY_ERROR", "Constraint violation: Duplicate value for unique field"),
    422: ("Payload failed validation", "VALIDATION_ERROR", "Request validation failed"),
    500: ("Unexpected failure", "INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again later."),
    503: ("Storage unreachable", "SERVICE_UNAVAILABLE", "Storage temporarily unavailable"),
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """
    Build a FastAPI `responses=` mapping for the given status codes.

    Args:
        status_codes: HTTP status codes to document; unknown codes are skipped

    Returns:
        Mapping of status code to OpenAPI response description
    """
    responses = {}
    for code in status_codes:
        if code not in _DOCUMENTED_ERRORS:
            continue
        summary, error_code, message = _DOCUMENTED_ERRORS[code]
        example = {
            "error": {
                "code": error_code,
                "message": message,
                "timestamp": "2025-01-01T00:00:00.000000Z",
                "request_id": "a1b2c3d4",
            }
        }
        responses[code] = {
            "description": summary,
            "model": ErrorEnvelope,
            "content": {"application/json": {"example": example}},
        }
    return responses


def get_public_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(404, 422, 500, 503)


def get_admin_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(400, 401, 403, 404, 409, 422, 500)
