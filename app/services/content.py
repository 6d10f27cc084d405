"""
Admin services for categories, blog posts and reviews.
Each creates its row first and then uploads the entity's single image.
"""

from typing import List, Optional, Tuple
import logging

from app.models.category import Category
from app.models.content import BlogPost, Review
from app.repositories.gateway import QuerySpec, StorageGateway
from app.schemas.content import BlogPostCreate, CategoryCreate, ReviewCreate
from app.services.image_processor import ImageFile
from app.services.upload import EntityKind, UploadOrchestrator, UploadReport
from app.utils.exceptions import BadRequestError, StorageError
from app.utils.validators import ValidationUtils

logger = logging.getLogger(__name__)


async def _slug_exists(gateway: StorageGateway, table: str, slug: str) -> bool:
    model = gateway.model_for(table)
    return await gateway.count(table, QuerySpec(where=[model.slug == slug])) > 0


class CategoryService:
    """Manually ordered sales collections."""

    TABLE = "property_categories"

    def __init__(self, gateway: StorageGateway, orchestrator: UploadOrchestrator):
        self.gateway = gateway
        self.orchestrator = orchestrator

    async def create_category(
        self,
        category_data: CategoryCreate,
        hero: Optional[ImageFile] = None
    ) -> Tuple[Category, UploadReport]:
        """
        Create a category at the end of the manual ordering.

        Raises:
            BadRequestError: If the category row cannot be created
        """
        slug = await ValidationUtils.generate_unique_slug(
            category_data.name,
            lambda candidate: _slug_exists(self.gateway, self.TABLE, candidate),
            fallback="category",
        )
        sort_order = await self.gateway.count(self.TABLE)

        try:
            category = await self.gateway.insert(self.TABLE, {
                **category_data.model_dump(),
                "slug": slug,
                "sort_order": sort_order,
            })
        except StorageError as e:
            raise BadRequestError(f"Failed to create category: {e.detail}")

        logger.info(f"Category created: {category.name} (sort order {sort_order})")
        report = await self.orchestrator.upload_entity_images(EntityKind.CATEGORY, category.id, hero)
        return await self.gateway.get(self.TABLE, category.id) or category, report

    async def list_categories(self, active_only: bool = False) -> List[Category]:
        conditions = [Category.is_active.is_(True)] if active_only else []
        return await self.gateway.select(
            self.TABLE,
            QuerySpec(where=conditions, order_by=[Category.sort_order.asc(), Category.name.asc()])
        )


class BlogPostService:
    """Blog posts with a featured image."""

    TABLE = "blog_posts"

    def __init__(self, gateway: StorageGateway, orchestrator: UploadOrchestrator):
        self.gateway = gateway
        self.orchestrator = orchestrator

    async def create_post(
        self,
        post_data: BlogPostCreate,
        featured_image: Optional[ImageFile] = None
    ) -> Tuple[BlogPost, UploadReport]:
        slug = await ValidationUtils.generate_unique_slug(
            post_data.title,
            lambda candidate: _slug_exists(self.gateway, self.TABLE, candidate),
            fallback="post",
        )

        try:
            post = await self.gateway.insert(self.TABLE, {**post_data.model_dump(), "slug": slug})
        except StorageError as e:
            raise BadRequestError(f"Failed to create blog post: {e.detail}")

        logger.info(f"Blog post created: {post.title} (ID: {post.id})")
        report = await self.orchestrator.upload_entity_images(EntityKind.BLOG_POST, post.id, featured_image)
        return await self.gateway.get(self.TABLE, post.id) or post, report

    async def list_posts(self) -> List[BlogPost]:
        return await self.gateway.select(self.TABLE, QuerySpec(order_by=[BlogPost.created_at.desc()]))


class ReviewService:
    """Guest reviews with an optional reviewer photo."""

    TABLE = "reviews"

    def __init__(self, gateway: StorageGateway, orchestrator: UploadOrchestrator):
        self.gateway = gateway
        self.orchestrator = orchestrator

    async def create_review(
        self,
        review_data: ReviewCreate,
        avatar: Optional[ImageFile] = None
    ) -> Tuple[Review, UploadReport]:
        """
        Create a review for an existing property.

        Raises:
            BadRequestError: If the property doesn't exist or the row cannot be created
        """
        if not await self.gateway.get("properties", review_data.property_id):
            raise BadRequestError(f"Property not found: {review_data.property_id}")

        try:
            review = await self.gateway.insert(self.TABLE, review_data.model_dump())
        except StorageError as e:
            raise BadRequestError(f"Failed to create review: {e.detail}")

        logger.info(f"Review created for property {review.property_id} by {review.reviewer_name}")
        report = await self.orchestrator.upload_entity_images(EntityKind.REVIEW, review.id, avatar)
        return await self.gateway.get(self.TABLE, review.id) or review, report

    async def list_reviews(self, property_id=None) -> List[Review]:
        conditions = [Review.property_id == property_id] if property_id else []
        return await self.gateway.select(
            self.TABLE,
            QuerySpec(where=conditions, order_by=[Review.created_at.desc()])
        )
