"""
Utility modules for the Realty Search API.
"""

from .auth import (
    create_access_token,
    decode_session,
    Session
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    BadRequestError,
    ServiceUnavailableError,
    InvalidTokenError,
    InsufficientPermissionsError,
    PropertyNotFoundError,
    UnsupportedFileTypeError,
    FileSizeExceededError,
    ImageProcessingError,
    StorageError,
    OperationTimeoutError
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    # Auth utilities
    "create_access_token",
    "decode_session",
    "Session",

    # Exceptions
    "APIException",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "BadRequestError",
    "ServiceUnavailableError",
    "InvalidTokenError",
    "InsufficientPermissionsError",
    "PropertyNotFoundError",
    "UnsupportedFileTypeError",
    "FileSizeExceededError",
    "ImageProcessingError",
    "StorageError",
    "OperationTimeoutError",
]
