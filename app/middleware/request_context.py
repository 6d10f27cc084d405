"""
Request context middleware.
Tags each request with an ID, refuses bodies above the upload ceiling before
they are read and, in debug mode, logs one line per request.
"""

from typing import Callable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from app.services.error_handler import ErrorHandlerService
from app.utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def declared_body_size(request: Request) -> Optional[int]:
    """
    Parse the Content-Length header.

    Raises:
        BadRequestError: If the header is not an integer
    """
    raw = request.headers.get("content-length")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise BadRequestError("Invalid content-length header")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns request IDs and enforces the whole-request size ceiling."""

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 160 * 1024 * 1024,
        enable_request_logging: bool = False
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            size = declared_body_size(request)
            if size is not None and size > self.max_request_size:
                raise BadRequestError(
                    f"Request size {size} bytes exceeds maximum allowed size {self.max_request_size} bytes"
                )
        except BadRequestError as exc:
            response = ErrorHandlerService.handle_api_exception(exc, request)
        else:
            response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id

        if self.enable_request_logging:
            elapsed = time.perf_counter() - started
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s",
                extra={"request_id": request_id, "status_code": response.status_code, "elapsed": elapsed}
            )

        return response
