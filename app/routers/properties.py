"""
Property API endpoints.
Public detail lookup by slug, plus admin create/update/delete with image uploads
sent in the same multipart request.
"""

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile, status
from fastapi.responses import Response
from typing import List, Optional
from uuid import UUID

from app.models.property import PropertyStatus
from app.repositories.gateway import StorageGateway
from app.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    PropertyMutationResponse
)
from app.schemas.upload import UploadReportResponse
from app.schemas.error import get_admin_error_responses, get_public_error_responses
from app.services.image_processor import read_image_uploads
from app.services.property import PropertyService
from app.services.search import SearchService
from app.utils.auth import Session
from app.utils.dependencies import (
    get_admin_session,
    get_gateway,
    get_property_service,
    get_search_service
)
from app.utils.validators import parse_form_model


router = APIRouter(prefix="/properties", tags=["Properties"])
admin_router = APIRouter(prefix="/admin/properties", tags=["Admin: Properties"])


@router.get(
    "/{slug}",
    response_model=PropertyResponse,
    status_code=status.HTTP_200_OK,
    summary="Get property by slug",
    description="Published, active property with its gallery ordered by sort order",
    responses=get_public_error_responses()
)
async def get_property_by_slug(
    slug: str = Path(..., max_length=255, description="Property slug"),
    search_service: SearchService = Depends(get_search_service)
) -> PropertyResponse:
    prop = await search_service.get_public_property(slug)
    return PropertyResponse.from_model(prop, search_service.gateway.resolve_public_url, active_images_only=True)


@admin_router.post(
    "",
    response_model=PropertyMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create property",
    description=(
        "Create a property from the JSON `data` form field, then upload the optional "
        "hero image and gallery. Image failures are reported, not raised."
    ),
    responses=get_admin_error_responses()
)
async def create_property(
    data: str = Form(..., description="PropertyCreate JSON document"),
    hero_image: Optional[UploadFile] = File(None, description="Hero image"),
    gallery_images: Optional[List[UploadFile]] = File(None, description="Gallery images (max 15)"),
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyMutationResponse:
    """
    Create a new property listing.

    Raises:
        ValidationError: If the property data is invalid
        BadRequestError: If the property row cannot be created
    """
    property_data = parse_form_model(PropertyCreate, data)
    hero = await read_image_uploads([hero_image])
    gallery = await read_image_uploads(gallery_images)

    property_obj, report = await property_service.create_property(
        property_data, hero[0] if hero else None, gallery
    )
    return PropertyMutationResponse(
        property=PropertyResponse.from_model(property_obj, gateway.resolve_public_url),
        uploads=UploadReportResponse.model_validate(report.to_dict()),
    )


@admin_router.get(
    "",
    response_model=PropertyListResponse,
    status_code=status.HTTP_200_OK,
    summary="List properties",
    description="All properties regardless of status, newest first",
    responses=get_admin_error_responses()
)
async def list_properties(
    status_filter: Optional[PropertyStatus] = Query(None, alias="status", description="Filter by status"),
    skip: int = Query(0, ge=0, description="Number of properties to skip"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of properties"),
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    rows, total = await property_service.list_properties(status_filter, skip, limit)
    return PropertyListResponse(
        properties=[PropertyResponse.from_model(row, gateway.resolve_public_url) for row in rows],
        total=total,
    )


@admin_router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    status_code=status.HTTP_200_OK,
    summary="Get property",
    responses=get_admin_error_responses()
)
async def get_property(
    property_id: UUID = Path(..., description="Property ID"),
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.get_property(property_id)
    return PropertyResponse.from_model(property_obj, gateway.resolve_public_url)


@admin_router.put(
    "/{property_id}",
    response_model=PropertyMutationResponse,
    status_code=status.HTTP_200_OK,
    summary="Update property",
    description="Partial update from the JSON `data` form field; the slug never changes",
    responses=get_admin_error_responses()
)
async def update_property(
    property_id: UUID = Path(..., description="Property ID"),
    data: Optional[str] = Form(None, description="PropertyUpdate JSON document"),
    hero_image: Optional[UploadFile] = File(None, description="Replacement hero image"),
    gallery_images: Optional[List[UploadFile]] = File(None, description="Additional gallery images (max 15)"),
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyMutationResponse:
    update_data = parse_form_model(PropertyUpdate, data) if data else None
    hero = await read_image_uploads([hero_image])
    gallery = await read_image_uploads(gallery_images)

    property_obj, report = await property_service.update_property(
        property_id, update_data, hero[0] if hero else None, gallery
    )
    return PropertyMutationResponse(
        property=PropertyResponse.from_model(property_obj, gateway.resolve_public_url),
        uploads=UploadReportResponse.model_validate(report.to_dict()),
    )


@admin_router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete property",
    description="Delete a property and its gallery records",
    responses=get_admin_error_responses()
)
async def delete_property(
    property_id: UUID = Path(..., description="Property ID"),
    session: Session = Depends(get_admin_session),
    property_service: PropertyService = Depends(get_property_service)
) -> Response:
    await property_service.delete_property(property_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
