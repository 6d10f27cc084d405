"""
Upload orchestrator for entity images.
Sequences hero and gallery uploads for an already-created parent row, applies
per-item timeouts and windowed concurrency, links stored paths back to rows
and reports an aggregate outcome without raising on image failures.
"""

import enum
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from app.config import Settings
from app.repositories.gateway import StorageGateway
from app.services.image_processor import ImageFile, ImageProcessor
from app.utils.async_utils import BatchedTaskRunner, retry_with_backoff, with_timeout
from app.utils.file_utils import safe_object_name

logger = logging.getLogger(__name__)

ERROR_PREVIEW_COUNT = 3


class EntityKind(str, enum.Enum):
    """Parent entities that own uploaded images."""
    PROPERTY = "property"
    CATEGORY = "category"
    BLOG_POST = "blog_post"
    REVIEW = "review"


@dataclass(frozen=True)
class EntityMedia:
    """Where an entity's images are stored and how they are linked."""

    table: str
    bucket: str
    hero_field: str
    hero_prefix: str
    hero_label: str
    gallery_prefix: Optional[str] = None
    gallery_table: Optional[str] = None
    gallery_parent_field: Optional[str] = None

    @property
    def supports_gallery(self) -> bool:
        return self.gallery_table is not None


ENTITY_MEDIA: Dict[EntityKind, EntityMedia] = {
    EntityKind.PROPERTY: EntityMedia(
        table="properties",
        bucket="property-images",
        hero_field="hero_image_path",
        hero_prefix="properties/hero",
        hero_label="Hero image",
        gallery_prefix="properties/gallery",
        gallery_table="property_images",
        gallery_parent_field="property_id",
    ),
    EntityKind.CATEGORY: EntityMedia(
        table="property_categories",
        bucket="property-images",
        hero_field="hero_image_path",
        hero_prefix="categories/hero",
        hero_label="Category image",
    ),
    EntityKind.BLOG_POST: EntityMedia(
        table="blog_posts",
        bucket="blog-images",
        hero_field="featured_image_path",
        hero_prefix="blog/featured",
        hero_label="Featured image",
    ),
    EntityKind.REVIEW: EntityMedia(
        table="reviews",
        bucket="review-images",
        hero_field="reviewer_avatar_path",
        hero_prefix="reviews/avatars",
        hero_label="Reviewer photo",
    ),
}


class FileState(str, enum.Enum):
    """Per-file progress. REJECTED, UPLOAD_FAILED, LINK_FAILED and LINKED are terminal."""
    SELECTED = "selected"
    VALIDATING = "validating"
    REJECTED = "rejected"
    PROCESSING = "processing"
    UPLOAD_FAILED = "upload_failed"
    UPLOADED = "uploaded"
    LINK_FAILED = "link_failed"
    LINKED = "linked"


TERMINAL_STATES = {FileState.REJECTED, FileState.UPLOAD_FAILED, FileState.LINK_FAILED, FileState.LINKED}


@dataclass
class ItemResult:
    """Outcome for one file."""

    filename: str
    state: FileState = FileState.SELECTED
    index: Optional[int] = None
    step: Optional[str] = None
    error: Optional[str] = None
    path: Optional[str] = None
    url: Optional[str] = None
    sort_order: Optional[int] = None
    record_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is FileState.LINKED

    def fail(self, state: FileState, step: str, error: Union[str, BaseException]) -> "ItemResult":
        self.state = state
        self.step = step
        self.error = str(error) or error.__class__.__name__
        return self

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "state": self.state.value,
            "index": self.index,
            "step": self.step,
            "error": self.error,
            "path": self.path,
            "url": self.url,
            "sort_order": self.sort_order,
        }


@dataclass
class GalleryResult:
    """Aggregate outcome of a gallery batch."""

    items: List[ItemResult] = field(default_factory=list)
    skipped: int = 0
    aborted: bool = False
    validation_errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def completed(self) -> int:
        return sum(1 for item in self.items if item.succeeded)

    @property
    def failed(self) -> int:
        if self.aborted:
            return 0
        return sum(1 for item in self.items if item.state in TERMINAL_STATES and not item.succeeded)

    @property
    def errors(self) -> List[str]:
        return [
            f"{item.filename}: {item.error}"
            for item in self.items
            if item.error and not item.succeeded
        ]

    def summary(self) -> Optional[str]:
        """User-facing one-line summary, None when no gallery files were given."""
        if self.aborted:
            return (
                f"Gallery upload cancelled: {len(self.validation_errors)} of {self.total} "
                f"files failed validation: {_preview(self.validation_errors)}"
            )
        if not self.items:
            return None
        if self.failed == 0:
            return f"All {self.total} gallery images uploaded successfully"
        return (
            f"{self.completed} of {self.total} gallery images uploaded, "
            f"{self.failed} failed: {_preview(self.errors)}"
        )

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "aborted": self.aborted,
            "validation_errors": list(self.validation_errors),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class UploadReport:
    """Everything the admin needs to know about one submission's images."""

    hero_label: str = "Hero image"
    hero: Optional[ItemResult] = None
    gallery: Optional[GalleryResult] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        hero_failed = self.hero is not None and not self.hero.succeeded
        gallery_failed = self.gallery is not None and (self.gallery.aborted or self.gallery.failed > 0)
        return hero_failed or gallery_failed

    def messages(self) -> List[str]:
        """Human-readable lines naming what failed and how many succeeded."""
        lines = list(self.warnings)

        if self.hero is not None:
            hero = self.hero
            if hero.state is FileState.LINKED:
                lines.append(f"{self.hero_label} uploaded")
            elif hero.state is FileState.REJECTED:
                lines.append(f"{self.hero_label} rejected: {hero.error}")
            elif hero.state is FileState.LINK_FAILED:
                lines.append(f"Failed to link {self.hero_label.lower()}: {hero.error}")
            else:
                lines.append(f"{self.hero_label} upload failed: {hero.error}")

        if self.gallery is not None:
            summary = self.gallery.summary()
            if summary:
                lines.append(summary)

        return lines

    def to_dict(self) -> dict:
        return {
            "hero": self.hero.to_dict() if self.hero else None,
            "gallery": self.gallery.to_dict() if self.gallery else None,
            "warnings": list(self.warnings),
            "messages": self.messages(),
            "has_failures": self.has_failures,
        }


def _preview(errors: Sequence[str]) -> str:
    """First few reasons joined, with an ellipsis when more were cut."""
    preview = "; ".join(errors[:ERROR_PREVIEW_COUNT])
    if len(errors) > ERROR_PREVIEW_COUNT:
        preview += "…"
    return preview


class UploadOrchestrator:
    """
    Uploads and links images for a parent entity.

    The parent row must already exist. Nothing here rolls the parent back or
    raises for image failures; every outcome is reported in the result objects.
    """

    def __init__(
        self,
        gateway: StorageGateway,
        processor: ImageProcessor,
        settings: Settings,
        clock: Callable[[], float] = time.time
    ):
        self.gateway = gateway
        self.processor = processor
        self.settings = settings
        self._clock = clock
        self.runner = BatchedTaskRunner(settings.upload_concurrency, settings.upload_batch_delay)

    def _timestamp_ms(self) -> int:
        return int(self._clock() * 1000)

    def _object_name(self, filename: str, attempt: int) -> str:
        name = safe_object_name(filename)
        return name if attempt <= 1 else f"retry{attempt}-{name}"

    def hero_path(self, media: EntityMedia, parent_id: Any, filename: str, attempt: int = 1) -> str:
        return f"{media.hero_prefix}/{parent_id}/{self._timestamp_ms()}-{self._object_name(filename, attempt)}"

    def gallery_path(self, media: EntityMedia, parent_id: Any, index: int, filename: str, attempt: int = 1) -> str:
        name = self._object_name(filename, attempt)
        return f"{media.gallery_prefix}/{parent_id}/{self._timestamp_ms()}-{index}-{name}"

    async def _upload(
        self,
        bucket: str,
        make_path: Callable[[int], str],
        file: ImageFile,
        timeout: float,
        label: str
    ) -> str:
        """
        Upload one object under a time budget; returns the stored path.

        A timed-out attempt may still land its object later, so every attempt
        writes to a path of its own.
        """
        attempts = 0

        async def attempt():
            nonlocal attempts
            attempts += 1
            return await with_timeout(
                self.gateway.upload_object(bucket, make_path(attempts), file.data, file.content_type),
                timeout,
                label,
            )

        result = await retry_with_backoff(
            attempt,
            max_attempts=self.settings.upload_retry_attempts,
            base_delay=self.settings.upload_retry_base_delay,
            label=label,
        )
        return result["path"]

    def _log_failure(self, kind: EntityKind, parent_id: Any, item: ItemResult) -> None:
        logger.error(
            f"Image {item.step} failed for {kind.value} {parent_id}: {item.filename}: {item.error}",
            extra={
                "entity_kind": kind.value,
                "parent_id": str(parent_id),
                "file_name": item.filename,
                "step": item.step,
                "file_state": item.state.value,
            }
        )

    async def upload_hero(self, kind: EntityKind, parent_id: Union[uuid.UUID, str], file: ImageFile) -> ItemResult:
        """
        Validate, process, upload and link a single hero image.

        Args:
            kind: Parent entity kind
            parent_id: Id of the already-created parent row
            file: Candidate image

        Returns:
            ItemResult in a terminal state
        """
        media = ENTITY_MEDIA[kind]
        item = ItemResult(filename=file.filename)

        item.state = FileState.VALIDATING
        error = self.processor.validate_image_file(file)
        if error:
            item.fail(FileState.REJECTED, "validation", error)
            self._log_failure(kind, parent_id, item)
            return item

        item.state = FileState.PROCESSING
        try:
            processed = await self.processor.process_image(file)
        except Exception as e:
            item.fail(FileState.UPLOAD_FAILED, "processing", e)
            self._log_failure(kind, parent_id, item)
            return item

        try:
            item.path = await self._upload(
                media.bucket,
                lambda attempt: self.hero_path(media, parent_id, processed.filename, attempt),
                processed,
                self.settings.hero_upload_timeout,
                f"{media.hero_label} upload for {file.filename}",
            )
        except Exception as e:
            item.fail(FileState.UPLOAD_FAILED, "upload", e)
            self._log_failure(kind, parent_id, item)
            return item

        item.state = FileState.UPLOADED
        try:
            await with_timeout(
                self.gateway.update(media.table, parent_id, {media.hero_field: item.path}),
                self.settings.link_timeout,
                f"Linking {media.hero_label.lower()}",
            )
        except Exception as e:
            # The object stays in storage; re-submitting the form links a fresh copy
            item.fail(FileState.LINK_FAILED, "link", e)
            self._log_failure(kind, parent_id, item)
            return item

        item.state = FileState.LINKED
        item.url = self.gateway.resolve_public_url(media.bucket, item.path)
        logger.info(f"{media.hero_label} linked for {kind.value} {parent_id}: {item.path}")
        return item

    async def _upload_gallery_item(
        self,
        kind: EntityKind,
        media: EntityMedia,
        parent_id: Union[uuid.UUID, str],
        index: int,
        file: ImageFile,
        alt_text: Optional[str],
        item: ItemResult
    ) -> ItemResult:
        item.state = FileState.PROCESSING
        try:
            processed = await self.processor.process_image(file)
        except Exception as e:
            item.fail(FileState.UPLOAD_FAILED, "processing", e)
            self._log_failure(kind, parent_id, item)
            return item

        try:
            item.path = await self._upload(
                media.bucket,
                lambda attempt: self.gallery_path(media, parent_id, index, processed.filename, attempt),
                processed,
                self.settings.gallery_upload_timeout,
                f"Gallery image upload for {file.filename}",
            )
        except Exception as e:
            item.fail(FileState.UPLOAD_FAILED, "upload", e)
            self._log_failure(kind, parent_id, item)
            return item

        item.state = FileState.UPLOADED
        try:
            record = await with_timeout(
                self.gateway.insert(media.gallery_table, {
                    media.gallery_parent_field: _as_uuid(parent_id),
                    "image_path": item.path,
                    "alt_text": alt_text,
                    "sort_order": item.sort_order,
                    "is_active": True,
                }),
                self.settings.link_timeout,
                f"Linking gallery image {file.filename}",
            )
        except Exception as e:
            item.fail(FileState.LINK_FAILED, "link", e)
            self._log_failure(kind, parent_id, item)
            return item

        item.state = FileState.LINKED
        item.record_id = str(record.id)
        item.url = self.gateway.resolve_public_url(media.bucket, item.path)
        return item

    async def upload_gallery(
        self,
        kind: EntityKind,
        parent_id: Union[uuid.UUID, str],
        files: Sequence[ImageFile],
        alt_text: Optional[str] = None
    ) -> GalleryResult:
        """
        Upload a gallery batch.

        Files beyond the gallery ceiling are skipped. Every file is validated
        before any upload starts and a single invalid file cancels the batch.
        After that gate, items succeed or fail independently and keep their
        selection position as sort order.

        Args:
            kind: Parent entity kind (must support galleries)
            parent_id: Id of the already-created parent row
            files: Candidate images in selection order
            alt_text: Alt text written on every image row

        Returns:
            GalleryResult with per-item outcomes
        """
        media = ENTITY_MEDIA[kind]
        if not media.supports_gallery:
            raise ValueError(f"{kind.value} does not support gallery images")

        result = GalleryResult()
        limit = self.settings.gallery_max_files
        if len(files) > limit:
            result.skipped = len(files) - limit
            logger.warning(
                f"Gallery for {kind.value} {parent_id} truncated to {limit} files ({result.skipped} skipped)"
            )
            files = list(files)[:limit]

        result.items = [
            ItemResult(filename=file.filename, index=index, sort_order=index + 1)
            for index, file in enumerate(files)
        ]
        if not files:
            return result

        for item, file in zip(result.items, files):
            item.state = FileState.VALIDATING
            error = self.processor.validate_image_file(file)
            if error:
                item.fail(FileState.REJECTED, "validation", error)
                result.validation_errors.append(f"{file.filename}: {error}")

        if result.validation_errors:
            result.aborted = True
            logger.warning(
                f"Gallery upload for {kind.value} {parent_id} cancelled: "
                f"{len(result.validation_errors)} invalid files",
                extra={"entity_kind": kind.value, "parent_id": str(parent_id), "step": "validation"}
            )
            return result

        def make_task(index: int, file: ImageFile, item: ItemResult):
            return lambda: self._upload_gallery_item(kind, media, parent_id, index, file, alt_text, item)

        outcomes = await self.runner.run([
            make_task(index, file, item)
            for index, (file, item) in enumerate(zip(files, result.items))
        ])

        for outcome in outcomes:
            if not outcome.ok:
                item = result.items[outcome.index]
                item.fail(FileState.UPLOAD_FAILED, item.step or "upload", outcome.error)
                self._log_failure(kind, parent_id, item)

        logger.info(
            f"Gallery upload for {kind.value} {parent_id}: "
            f"{result.completed} of {result.total} uploaded, {result.failed} failed"
        )
        return result

    async def upload_entity_images(
        self,
        kind: EntityKind,
        parent_id: Union[uuid.UUID, str],
        hero: Optional[ImageFile] = None,
        gallery: Optional[Sequence[ImageFile]] = None,
        alt_text: Optional[str] = None
    ) -> UploadReport:
        """
        Upload the hero image, then the gallery, for one parent entity.

        Returns:
            UploadReport; never raises for image failures
        """
        media = ENTITY_MEDIA[kind]
        report = UploadReport(hero_label=media.hero_label)

        if hero is not None:
            report.hero = await self.upload_hero(kind, parent_id, hero)

        if gallery:
            report.gallery = await self.upload_gallery(kind, parent_id, gallery, alt_text)
            if report.gallery.skipped:
                report.warnings.append(
                    f"Only the first {self.settings.gallery_max_files} gallery images were processed; "
                    f"{report.gallery.skipped} skipped"
                )

        return report


def _as_uuid(value: Union[uuid.UUID, str]) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
