"""
Exception hierarchy for the Realty Search API.
HTTP errors carry their status and error code as class attributes; pipeline
errors are plain exceptions that the upload orchestrator turns into per-file results.
"""

from typing import Any, Dict, List, Optional, Sequence
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base class for errors that map directly onto an HTTP response."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "API_ERROR"

    def __init__(self, detail: str, headers: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.http_status, detail=detail, headers=headers)


class BadRequestError(APIException):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"


class UnauthorizedError(APIException):
    """Missing bearer credentials."""

    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class InvalidTokenError(UnauthorizedError):
    """Bearer token that fails to decode, has expired or lacks identity claims."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail)


class ForbiddenError(APIException):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"


class InsufficientPermissionsError(ForbiddenError):
    """Authenticated session without the admin role."""

    def __init__(self, action: str):
        super().__init__(f"Insufficient permissions to {action}")


class NotFoundError(APIException):
    http_status = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        suffix = f" with ID: {resource_id}" if resource_id else ""
        super().__init__(f"{resource} not found{suffix}")


class PropertyNotFoundError(NotFoundError):
    """No published property answers to the requested slug."""

    def __init__(self, identifier: str):
        super().__init__("Property", identifier)


class ValidationError(APIException):
    """Form payload rejected by its schema; field_errors lists each failure."""

    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"

    def __init__(self, detail: str, field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(detail)
        self.field_errors = field_errors or []


class ServiceUnavailableError(APIException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "SERVICE_UNAVAILABLE"

    def __init__(self, detail: str = "Service temporarily unavailable"):
        super().__init__(detail)


# Image validation. Raised by the processor, reported per file by the orchestrator.
class UnsupportedFileTypeError(BadRequestError):
    """Image whose MIME type (or extension fallback) is outside the allow list."""

    def __init__(self, file_type: str, supported_types: Sequence[str]):
        self.file_type = file_type
        self.supported_types = list(supported_types)
        super().__init__(f"Unsupported format. Please use: {', '.join(self.supported_types)}")


class FileSizeExceededError(BadRequestError):
    """Image larger than the per-file ceiling."""

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(f"File too large. Maximum size is {max_size / (1024 * 1024):g}MB")


# Pipeline errors
class ImageProcessingError(Exception):
    """Decoding or re-encoding an image failed."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Failed to process image {filename}: {reason}")


class StorageError(Exception):
    """A Storage Gateway row or object operation failed."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class OperationTimeoutError(Exception):
    """An awaited operation exceeded its time budget."""

    def __init__(self, message: str, seconds: float):
        self.seconds = seconds
        super().__init__(message)
