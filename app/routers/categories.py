"""
Category API endpoints: public listing and admin creation with a hero image.
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from typing import Optional

from app.models.category import Category
from app.repositories.gateway import StorageGateway
from app.schemas.content import (
    CategoryCreate,
    CategoryListResponse,
    CategoryMutationResponse,
    CategoryResponse
)
from app.schemas.upload import UploadReportResponse
from app.schemas.error import get_admin_error_responses
from app.services.content import CategoryService
from app.services.image_processor import read_image_uploads
from app.services.upload import ENTITY_MEDIA, EntityKind
from app.utils.auth import Session
from app.utils.dependencies import get_admin_session, get_category_service, get_gateway
from app.utils.validators import parse_form_model


router = APIRouter(prefix="/categories", tags=["Categories"])
admin_router = APIRouter(prefix="/admin/categories", tags=["Admin: Categories"])


def to_category_response(category: Category, gateway: StorageGateway) -> CategoryResponse:
    bucket = ENTITY_MEDIA[EntityKind.CATEGORY].bucket
    return CategoryResponse(
        **category.to_dict(),
        hero_image_url=gateway.resolve_public_url(bucket, category.hero_image_path),
    )


@router.get(
    "",
    response_model=CategoryListResponse,
    status_code=status.HTTP_200_OK,
    summary="List active categories",
    description="Active categories in their manual sort order"
)
async def list_categories(
    gateway: StorageGateway = Depends(get_gateway),
    category_service: CategoryService = Depends(get_category_service)
) -> CategoryListResponse:
    categories = await category_service.list_categories(active_only=True)
    return CategoryListResponse(
        categories=[to_category_response(category, gateway) for category in categories],
        total=len(categories),
    )


@admin_router.get(
    "",
    response_model=CategoryListResponse,
    status_code=status.HTTP_200_OK,
    summary="List all categories",
    responses=get_admin_error_responses()
)
async def list_all_categories(
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    category_service: CategoryService = Depends(get_category_service)
) -> CategoryListResponse:
    categories = await category_service.list_categories()
    return CategoryListResponse(
        categories=[to_category_response(category, gateway) for category in categories],
        total=len(categories),
    )


@admin_router.post(
    "",
    response_model=CategoryMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
    description="Create a category from the JSON `data` form field with an optional hero image",
    responses=get_admin_error_responses()
)
async def create_category(
    data: str = Form(..., description="CategoryCreate JSON document"),
    hero_image: Optional[UploadFile] = File(None, description="Category hero image"),
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    category_service: CategoryService = Depends(get_category_service)
) -> CategoryMutationResponse:
    category_data = parse_form_model(CategoryCreate, data)
    hero = await read_image_uploads([hero_image])

    category, report = await category_service.create_category(category_data, hero[0] if hero else None)
    return CategoryMutationResponse(
        category=to_category_response(category, gateway),
        uploads=UploadReportResponse.model_validate(report.to_dict()),
    )
