"""
Property service for admin property management.
Handles create/update/delete with slug rules, then hands images to the upload orchestrator.
"""

from typing import Optional, List, Sequence, Tuple
import uuid
import logging

from app.models.property import Property, PropertyStatus
from app.repositories.gateway import StorageGateway
from app.repositories.property import PropertyRepository
from app.schemas.property import PropertyCreate, PropertyUpdate
from app.services.image_processor import ImageFile
from app.services.upload import EntityKind, UploadOrchestrator, UploadReport
from app.utils.exceptions import BadRequestError, NotFoundError, StorageError
from app.utils.validators import ValidationUtils

logger = logging.getLogger(__name__)


class PropertyService:
    """
    Admin property management.

    The property row is written first; image uploads run afterwards and never
    roll the row back. A failed row write is a blocking error.
    """

    TABLE = "properties"

    def __init__(self, gateway: StorageGateway, orchestrator: UploadOrchestrator):
        self.gateway = gateway
        self.orchestrator = orchestrator
        self.property_repo = PropertyRepository(gateway)

    async def create_property(
        self,
        property_data: PropertyCreate,
        hero: Optional[ImageFile] = None,
        gallery: Optional[Sequence[ImageFile]] = None
    ) -> Tuple[Property, UploadReport]:
        """
        Create a property and upload its images.

        Args:
            property_data: Property creation data
            hero: Optional hero image
            gallery: Optional gallery images in selection order

        Returns:
            Tuple of (property with images loaded, upload report)

        Raises:
            BadRequestError: If the property row cannot be created
        """
        await self._ensure_category(property_data.category_id)

        create_data = property_data.model_dump()
        create_data["slug"] = await ValidationUtils.generate_unique_slug(
            property_data.title, self.property_repo.slug_exists, fallback="property"
        )

        try:
            property_obj = await self.gateway.insert(self.TABLE, create_data)
        except StorageError as e:
            logger.error(f"Failed to create property {property_data.title!r}: {e}")
            raise BadRequestError(f"Failed to create property: {e.detail}")

        logger.info(f"Property created: {property_obj.title} (ID: {property_obj.id}, slug: {property_obj.slug})")

        report = await self.orchestrator.upload_entity_images(
            EntityKind.PROPERTY, property_obj.id, hero, gallery, alt_text=property_obj.title
        )
        return await self._refresh(property_obj), report

    async def update_property(
        self,
        property_id: uuid.UUID,
        update_data: Optional[PropertyUpdate] = None,
        hero: Optional[ImageFile] = None,
        gallery: Optional[Sequence[ImageFile]] = None
    ) -> Tuple[Property, UploadReport]:
        """
        Update a property and upload any new images.
        The slug assigned at creation is kept even when the title changes.

        Raises:
            NotFoundError: If the property doesn't exist
            BadRequestError: If the update cannot be written
        """
        property_obj = await self.get_property(property_id)

        patch = update_data.model_dump(exclude_unset=True) if update_data else {}
        patch.pop("slug", None)
        if "category_id" in patch:
            await self._ensure_category(patch["category_id"])

        if patch:
            try:
                property_obj = await self.gateway.update(self.TABLE, property_id, patch)
            except StorageError as e:
                logger.error(f"Failed to update property {property_id}: {e}")
                raise BadRequestError(f"Failed to update property: {e.detail}")
            logger.info(f"Property updated: {property_id} ({', '.join(sorted(patch))})")

        report = await self.orchestrator.upload_entity_images(
            EntityKind.PROPERTY, property_obj.id, hero, gallery, alt_text=property_obj.title
        )
        return await self._refresh(property_obj), report

    async def get_property(self, property_id: uuid.UUID) -> Property:
        """
        Get a property by ID regardless of status.

        Raises:
            NotFoundError: If property doesn't exist
        """
        property_obj = await self.gateway.get(self.TABLE, property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        return property_obj

    async def list_properties(
        self,
        status: Optional[PropertyStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[Property], int]:
        return await self.property_repo.list_admin(status, skip, limit)

    async def delete_property(self, property_id: uuid.UUID) -> bool:
        """
        Delete a property; its image rows are removed with it.

        Raises:
            NotFoundError: If property doesn't exist
        """
        deleted = await self.gateway.delete(self.TABLE, property_id)
        if not deleted:
            raise NotFoundError("Property", str(property_id))
        logger.info(f"Property deleted: {property_id}")
        return True

    async def _ensure_category(self, category_id: Optional[uuid.UUID]) -> None:
        if category_id is None:
            return
        if not await self.gateway.get("property_categories", category_id):
            raise BadRequestError(f"Category not found: {category_id}")

    async def _refresh(self, property_obj: Property) -> Property:
        return await self.gateway.get(self.TABLE, property_obj.id) or property_obj
