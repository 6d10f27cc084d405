"""
Admin endpoints for blog posts and guest reviews, each with a single optional image.
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from typing import List, Optional
from uuid import UUID

from app.models.content import BlogPost, Review
from app.repositories.gateway import StorageGateway
from app.schemas.content import (
    BlogPostCreate,
    BlogPostMutationResponse,
    BlogPostResponse,
    ReviewCreate,
    ReviewMutationResponse,
    ReviewResponse
)
from app.schemas.upload import UploadReportResponse
from app.schemas.error import get_admin_error_responses
from app.services.content import BlogPostService, ReviewService
from app.services.image_processor import read_image_uploads
from app.services.upload import ENTITY_MEDIA, EntityKind
from app.utils.auth import Session
from app.utils.dependencies import (
    get_admin_session,
    get_blog_post_service,
    get_gateway,
    get_review_service
)
from app.utils.validators import parse_form_model


blog_router = APIRouter(prefix="/admin/blog-posts", tags=["Admin: Blog"])
review_router = APIRouter(prefix="/admin/reviews", tags=["Admin: Reviews"])


def to_post_response(post: BlogPost, gateway: StorageGateway) -> BlogPostResponse:
    bucket = ENTITY_MEDIA[EntityKind.BLOG_POST].bucket
    return BlogPostResponse(
        **post.to_dict(),
        featured_image_url=gateway.resolve_public_url(bucket, post.featured_image_path),
    )


def to_review_response(review: Review, gateway: StorageGateway) -> ReviewResponse:
    bucket = ENTITY_MEDIA[EntityKind.REVIEW].bucket
    return ReviewResponse(
        **review.to_dict(),
        reviewer_avatar_url=gateway.resolve_public_url(bucket, review.reviewer_avatar_path),
    )


@blog_router.post(
    "",
    response_model=BlogPostMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create blog post",
    description="Create a post from the JSON `data` form field with an optional featured image",
    responses=get_admin_error_responses()
)
async def create_blog_post(
    data: str = Form(..., description="BlogPostCreate JSON document"),
    featured_image: Optional[UploadFile] = File(None, description="Featured image"),
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    blog_service: BlogPostService = Depends(get_blog_post_service)
) -> BlogPostMutationResponse:
    post_data = parse_form_model(BlogPostCreate, data)
    image = await read_image_uploads([featured_image])

    post, report = await blog_service.create_post(post_data, image[0] if image else None)
    return BlogPostMutationResponse(
        post=to_post_response(post, gateway),
        uploads=UploadReportResponse.model_validate(report.to_dict()),
    )


@blog_router.get(
    "",
    response_model=List[BlogPostResponse],
    status_code=status.HTTP_200_OK,
    summary="List blog posts",
    responses=get_admin_error_responses()
)
async def list_blog_posts(
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    blog_service: BlogPostService = Depends(get_blog_post_service)
) -> List[BlogPostResponse]:
    return [to_post_response(post, gateway) for post in await blog_service.list_posts()]


@review_router.post(
    "",
    response_model=ReviewMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create review",
    description="Create a review for an existing property with an optional reviewer photo",
    responses=get_admin_error_responses()
)
async def create_review(
    data: str = Form(..., description="ReviewCreate JSON document"),
    reviewer_photo: Optional[UploadFile] = File(None, description="Reviewer photo"),
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    review_service: ReviewService = Depends(get_review_service)
) -> ReviewMutationResponse:
    review_data = parse_form_model(ReviewCreate, data)
    photo = await read_image_uploads([reviewer_photo])

    review, report = await review_service.create_review(review_data, photo[0] if photo else None)
    return ReviewMutationResponse(
        review=to_review_response(review, gateway),
        uploads=UploadReportResponse.model_validate(report.to_dict()),
    )


@review_router.get(
    "",
    response_model=List[ReviewResponse],
    status_code=status.HTTP_200_OK,
    summary="List reviews",
    responses=get_admin_error_responses()
)
async def list_reviews(
    property_id: Optional[UUID] = Query(None, description="Only reviews for this property"),
    session: Session = Depends(get_admin_session),
    gateway: StorageGateway = Depends(get_gateway),
    review_service: ReviewService = Depends(get_review_service)
) -> List[ReviewResponse]:
    return [to_review_response(review, gateway) for review in await review_service.list_reviews(property_id)]
