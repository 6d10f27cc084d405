"""
FastAPI dependency injection utilities.
Resolves the application-scoped Storage Gateway and builds services and
sessions per request.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import Settings
from app.repositories.gateway import StorageGateway
from app.services.content import BlogPostService, CategoryService, ReviewService
from app.services.image_processor import ImageProcessor
from app.services.property import PropertyService
from app.services.search import SearchService
from app.services.upload import UploadOrchestrator
from app.utils.auth import Session
from app.utils.exceptions import (
    UnauthorizedError,
    InvalidTokenError,
    InsufficientPermissionsError,
    ServiceUnavailableError
)


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_gateway(request: Request) -> StorageGateway:
    """
    Get the Storage Gateway created at startup.

    Raises:
        ServiceUnavailableError: If the application has not finished starting
    """
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise ServiceUnavailableError("Storage is not available")
    return gateway


def get_upload_orchestrator(
    gateway: StorageGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings)
) -> UploadOrchestrator:
    return UploadOrchestrator(gateway, ImageProcessor(settings), settings)


def get_search_service(
    gateway: StorageGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings)
) -> SearchService:
    return SearchService(gateway, settings)


def get_property_service(
    gateway: StorageGateway = Depends(get_gateway),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator)
) -> PropertyService:
    return PropertyService(gateway, orchestrator)


def get_category_service(
    gateway: StorageGateway = Depends(get_gateway),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator)
) -> CategoryService:
    return CategoryService(gateway, orchestrator)


def get_blog_post_service(
    gateway: StorageGateway = Depends(get_gateway),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator)
) -> BlogPostService:
    return BlogPostService(gateway, orchestrator)


def get_review_service(
    gateway: StorageGateway = Depends(get_gateway),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator)
) -> ReviewService:
    return ReviewService(gateway, orchestrator)


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    gateway: StorageGateway = Depends(get_gateway)
) -> Session:
    """
    Get the authenticated session from the bearer token.

    Raises:
        UnauthorizedError: If no token is provided
        InvalidTokenError: If the token is invalid or expired
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    session = gateway.get_session(credentials.credentials)
    if session is None:
        raise InvalidTokenError("Invalid or expired token")
    return session


async def get_admin_session(
    session: Session = Depends(get_current_session)
) -> Session:
    """
    Get the current session, requiring the admin role.

    Raises:
        InsufficientPermissionsError: If the caller is not an admin
    """
    if not session.is_admin:
        raise InsufficientPermissionsError("manage content")
    return session
