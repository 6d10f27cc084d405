"""
Error handling service.
Every error leaves the API as {"error": {code, message, timestamp, request_id, details?}},
logged once with the request ID the request-context middleware assigned.
"""

from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.utils.exceptions import APIException, OperationTimeoutError, StorageError
import logging
import uuid

logger = logging.getLogger(__name__)

_JSON_SCALARS = (str, int, float, bool, type(None))

# Substrings of driver messages (postgres and sqlite) mapped to client-safe text
_CONSTRAINT_MESSAGES = (
    ("unique", "Duplicate value for unique field"),
    ("foreign key", "Referenced record does not exist"),
    ("not null", "Required field cannot be empty"),
    ("check constraint", "Value does not meet validation requirements"),
)


class ErrorHandlerService:
    """Turns exceptions into the shared error envelope."""

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Build the error envelope.

        Args:
            error_code: Machine-readable code such as NOT_FOUND
            message: Human-readable message
            details: Per-field validation failures, omitted when empty
            request_id: Identifier echoed in the X-Request-ID header

        Returns:
            Envelope dictionary
        """
        body = {
            "code": error_code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "request_id": request_id,
        }
        if details:
            body["details"] = details
        return {"error": body}

    @staticmethod
    def _respond(
        request: Optional[Request],
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
        log_level: int = logging.WARNING,
        exc_info: Any = None
    ) -> JSONResponse:
        request_id = ErrorHandlerService._request_id(request)
        path = request.url.path if request else None

        logger.log(
            log_level,
            f"{error_code} [{request_id}] {path}: {message}",
            extra={"error_code": error_code, "status_code": status_code, "request_id": request_id, "path": path},
            exc_info=exc_info
        )

        return JSONResponse(
            status_code=status_code,
            content=ErrorHandlerService.format_error_response(error_code, message, details, request_id),
            headers=headers
        )

    @staticmethod
    def handle_api_exception(exception: APIException, request: Optional[Request] = None) -> JSONResponse:
        return ErrorHandlerService._respond(
            request,
            exception.status_code,
            exception.error_code,
            exception.detail,
            details=getattr(exception, "field_errors", None),
            headers=exception.headers
        )

    @staticmethod
    def handle_validation_error(
        errors: Sequence[Dict[str, Any]],
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Report request or model validation failures field by field.

        Args:
            errors: Error dictionaries as returned by `.errors()`
            request: Request being answered
        """
        details = []
        for error in errors:
            value = error.get("input")
            details.append({
                "field": " -> ".join(str(loc) for loc in error.get("loc", ())),
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type"),
                "input": value if isinstance(value, _JSON_SCALARS) else None
            })

        return ErrorHandlerService._respond(
            request, 422, "VALIDATION_ERROR", "Request validation failed", details=details
        )

    @staticmethod
    def handle_storage_error(exception: StorageError, request: Optional[Request] = None) -> JSONResponse:
        """Storage Gateway failures that escaped a service."""
        return ErrorHandlerService._respond(
            request,
            503,
            "SERVICE_UNAVAILABLE",
            "Storage temporarily unavailable",
            log_level=logging.ERROR,
            exc_info=exception
        )

    @staticmethod
    def handle_timeout(exception: OperationTimeoutError, request: Optional[Request] = None) -> JSONResponse:
        return ErrorHandlerService._respond(
            request, 504, "TIMEOUT", str(exception), log_level=logging.ERROR
        )

    @staticmethod
    def handle_database_error(exception: SQLAlchemyError, request: Optional[Request] = None) -> JSONResponse:
        if isinstance(exception, IntegrityError):
            driver_message = str(exception.orig).lower()
            message = next(
                (f"Constraint violation: {text}" for marker, text in _CONSTRAINT_MESSAGES if marker in driver_message),
                "Data integrity constraint violation"
            )
            return ErrorHandlerService._respond(
                request, 409, "INTEGRITY_ERROR", message, log_level=logging.ERROR, exc_info=exception
            )

        return ErrorHandlerService._respond(
            request, 500, "DATABASE_ERROR", "Database operation failed", log_level=logging.ERROR, exc_info=exception
        )

    @staticmethod
    def handle_http_exception(
        exception: StarletteHTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Routing and framework errors (unknown path, wrong method)."""
        return ErrorHandlerService._respond(
            request,
            exception.status_code,
            f"HTTP_{exception.status_code}",
            str(exception.detail),
            headers=getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(exception: Exception, request: Optional[Request] = None) -> JSONResponse:
        return ErrorHandlerService._respond(
            request,
            500,
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred. Please try again later.",
            log_level=logging.ERROR,
            exc_info=exception
        )

    @staticmethod
    def _request_id(request: Optional[Request]) -> str:
        """Request ID assigned by the request-context middleware, or a fresh one."""
        request_id = getattr(request.state, "request_id", None) if request is not None else None
        return request_id or str(uuid.uuid4())[:8]


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing handlers on the application."""

    async def on_api_exception(request: Request, exc: APIException):
        return ErrorHandlerService.handle_api_exception(exc, request)

    async def on_validation_error(request: Request, exc: Exception):
        return ErrorHandlerService.handle_validation_error(exc.errors(), request)

    async def on_storage_error(request: Request, exc: StorageError):
        return ErrorHandlerService.handle_storage_error(exc, request)

    async def on_timeout(request: Request, exc: OperationTimeoutError):
        return ErrorHandlerService.handle_timeout(exc, request)

    async def on_database_error(request: Request, exc: SQLAlchemyError):
        return ErrorHandlerService.handle_database_error(exc, request)

    async def on_http_exception(request: Request, exc: StarletteHTTPException):
        return ErrorHandlerService.handle_http_exception(exc, request)

    async def on_unexpected_error(request: Request, exc: Exception):
        return ErrorHandlerService.handle_unexpected_error(exc, request)

    app.add_exception_handler(APIException, on_api_exception)
    app.add_exception_handler(RequestValidationError, on_validation_error)
    app.add_exception_handler(PydanticValidationError, on_validation_error)
    app.add_exception_handler(StorageError, on_storage_error)
    app.add_exception_handler(OperationTimeoutError, on_timeout)
    app.add_exception_handler(SQLAlchemyError, on_database_error)
    app.add_exception_handler(StarletteHTTPException, on_http_exception)
    app.add_exception_handler(Exception, on_unexpected_error)
