"""
Tests for the upload orchestrator.
Exercises hero and gallery sequencing, partial failures, validation aborts,
timeouts and link failures against a real gateway with injected faults.
"""

import asyncio
from typing import Optional

import pytest

from app.config import Settings
from app.models.image import PropertyImage
from app.repositories.gateway import QuerySpec, StorageGateway
from app.services.image_processor import ImageFile, ImageProcessor
from app.services.upload import EntityKind, FileState, UploadOrchestrator
from app.utils.exceptions import StorageError


class FailingUploadGateway(StorageGateway):
    """Gateway whose object uploads fail for selected file names."""

    fail_names = ()

    async def upload_object(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None):
        if any(path.endswith(name) for name in self.fail_names):
            raise StorageError("upload", "simulated outage")
        return await super().upload_object(bucket, path, data, content_type)


class SlowUploadGateway(StorageGateway):
    """Gateway whose object uploads take longer than the test time budget."""

    delay = 0.2

    async def upload_object(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None):
        await asyncio.sleep(self.delay)
        return await super().upload_object(bucket, path, data, content_type)


class FailingLinkGateway(StorageGateway):
    """Gateway whose row updates always fail."""

    async def update(self, table, id, patch):
        raise StorageError(f"update {table}", "simulated write failure")


class FailingInsertGateway(StorageGateway):
    """Gateway whose gallery row inserts always fail."""

    async def insert(self, table, row):
        if table == "property_images":
            raise StorageError(f"insert {table}", "simulated write failure")
        return await super().insert(table, row)


class FirstAttemptSlowGateway(StorageGateway):
    """Gateway whose first object upload outlasts the time budget but still lands."""

    delay = 0.2

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.upload_paths = []

    async def upload_object(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None):
        self.upload_paths.append(path)
        if len(self.upload_paths) == 1:
            await asyncio.sleep(self.delay)
        return await super().upload_object(bucket, path, data, content_type)


async def gallery_rows(gateway: StorageGateway, property_id):
    return await gateway.select(
        "property_images",
        QuerySpec(
            where=[PropertyImage.property_id == property_id],
            order_by=[PropertyImage.sort_order.asc()],
        )
    )


class TestHeroUpload:
    """Test single hero image uploads."""

    @pytest.mark.asyncio
    async def test_hero_uploaded_and_linked(
        self, orchestrator: UploadOrchestrator, gateway: StorageGateway, make_property, png_file
    ):
        prop = await make_property()

        item = await orchestrator.upload_hero(EntityKind.PROPERTY, prop.id, png_file("front view.png"))

        assert item.state is FileState.LINKED
        assert item.path.startswith(f"properties/hero/{prop.id}/")
        assert item.path.endswith("-front_view.png")
        assert item.url == f"http://storage.test/storage/v1/object/public/property-images/{item.path}"

        refreshed = await gateway.get("properties", prop.id)
        assert refreshed.hero_image_path == item.path
        assert await gateway.object_store.exists("property-images", item.path)

    @pytest.mark.asyncio
    async def test_invalid_hero_rejected_without_upload(
        self, orchestrator: UploadOrchestrator, gateway: StorageGateway, make_property
    ):
        prop = await make_property()
        file = ImageFile(filename="anim.gif", content_type="image/gif", data=b"GIF89a")

        item = await orchestrator.upload_hero(EntityKind.PROPERTY, prop.id, file)

        assert item.state is FileState.REJECTED
        assert item.step == "validation"
        assert item.path is None
        refreshed = await gateway.get("properties", prop.id)
        assert refreshed.hero_image_path is None

    @pytest.mark.asyncio
    async def test_hero_timeout_reported(
        self, engine, object_store, settings: Settings, make_property, png_file
    ):
        settings = settings.model_copy(update={"hero_upload_timeout": 0.05})
        gateway = SlowUploadGateway(engine, object_store, settings)
        orchestrator = UploadOrchestrator(gateway, ImageProcessor(settings), settings)
        prop = await make_property()

        item = await orchestrator.upload_hero(EntityKind.PROPERTY, prop.id, png_file("slow.png"))

        assert item.state is FileState.UPLOAD_FAILED
        assert item.step == "upload"
        assert "timed out after 0.05 seconds" in item.error
        refreshed = await gateway.get("properties", prop.id)
        assert refreshed.hero_image_path is None

        # Let the detached upload settle before the loop closes
        await asyncio.sleep(SlowUploadGateway.delay + 0.1)

    @pytest.mark.asyncio
    async def test_retry_after_timeout_writes_a_fresh_object(
        self, engine, object_store, settings: Settings, make_property, png_file
    ):
        settings = settings.model_copy(update={"hero_upload_timeout": 0.05, "upload_retry_attempts": 2})
        gateway = FirstAttemptSlowGateway(engine, object_store, settings)
        orchestrator = UploadOrchestrator(gateway, ImageProcessor(settings), settings, clock=lambda: 1700000000.0)
        prop = await make_property()

        item = await orchestrator.upload_hero(EntityKind.PROPERTY, prop.id, png_file("deck.png"))
        await asyncio.sleep(FirstAttemptSlowGateway.delay + 0.1)

        assert item.state is FileState.LINKED
        first, second = gateway.upload_paths
        assert first != second
        assert item.path == second
        assert second.endswith("-retry2-deck.png")
        assert await object_store.exists("property-images", first)
        assert await object_store.exists("property-images", second)

    @pytest.mark.asyncio
    async def test_link_failure_leaves_object_stored(
        self, engine, object_store, settings: Settings, make_property, png_file
    ):
        gateway = FailingLinkGateway(engine, object_store, settings)
        orchestrator = UploadOrchestrator(gateway, ImageProcessor(settings), settings)
        prop = await make_property()

        report = await orchestrator.upload_entity_images(EntityKind.PROPERTY, prop.id, hero=png_file())

        assert report.hero.state is FileState.LINK_FAILED
        assert report.hero.step == "link"
        assert await object_store.exists("property-images", report.hero.path)
        assert report.has_failures
        assert report.messages() == [
            "Failed to link hero image: update properties failed: simulated write failure"
        ]


class TestGalleryUpload:
    """Test gallery batches."""

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_selection_positions(
        self, engine, object_store, settings: Settings, make_property, png_file
    ):
        """Files 2 and 4 fail; the rest link with sort orders 1, 3 and 5."""
        gateway = FailingUploadGateway(engine, object_store, settings)
        gateway.fail_names = ("img2.png", "img4.png")
        orchestrator = UploadOrchestrator(gateway, ImageProcessor(settings), settings)
        prop = await make_property()
        files = [png_file(f"img{n}.png") for n in range(1, 6)]

        result = await orchestrator.upload_gallery(EntityKind.PROPERTY, prop.id, files, alt_text=prop.title)

        assert result.total == 5
        assert result.completed == 3
        assert result.failed == 2
        assert [item.state for item in result.items] == [
            FileState.LINKED,
            FileState.UPLOAD_FAILED,
            FileState.LINKED,
            FileState.UPLOAD_FAILED,
            FileState.LINKED,
        ]
        assert result.summary().startswith("3 of 5 gallery images uploaded, 2 failed: img2.png:")

        rows = await gallery_rows(gateway, prop.id)
        assert [row.sort_order for row in rows] == [1, 3, 5]
        assert all(row.alt_text == prop.title for row in rows)
        assert all(row.is_active for row in rows)

    @pytest.mark.asyncio
    async def test_undecodable_item_fails_alone(
        self, orchestrator: UploadOrchestrator, gateway: StorageGateway, make_property, png_file
    ):
        prop = await make_property()
        files = [
            png_file("a.png"),
            ImageFile(filename="broken.avif", content_type="image/avif", data=b"not an image"),
            png_file("c.png"),
        ]

        result = await orchestrator.upload_gallery(EntityKind.PROPERTY, prop.id, files)

        assert not result.aborted
        broken = result.items[1]
        assert broken.state is FileState.UPLOAD_FAILED
        assert broken.step == "processing"
        assert "broken.avif" in broken.error
        assert [item.state for item in (result.items[0], result.items[2])] == [FileState.LINKED] * 2
        rows = await gallery_rows(gateway, prop.id)
        assert [row.sort_order for row in rows] == [1, 3]

    @pytest.mark.asyncio
    async def test_slow_item_times_out(
        self, engine, object_store, settings: Settings, make_property, png_file
    ):
        settings = settings.model_copy(update={"gallery_upload_timeout": 0.05})
        gateway = SlowUploadGateway(engine, object_store, settings)
        orchestrator = UploadOrchestrator(gateway, ImageProcessor(settings), settings)
        prop = await make_property()

        result = await orchestrator.upload_gallery(EntityKind.PROPERTY, prop.id, [png_file("slow.png")])

        item = result.items[0]
        assert item.state is FileState.UPLOAD_FAILED
        assert item.step == "upload"
        assert "timed out after 0.05 seconds" in item.error
        assert result.completed == 0
        assert await gallery_rows(gateway, prop.id) == []

        await asyncio.sleep(SlowUploadGateway.delay + 0.1)

    @pytest.mark.asyncio
    async def test_row_insert_failure_leaves_object_stored(
        self, engine, object_store, settings: Settings, make_property, png_file
    ):
        gateway = FailingInsertGateway(engine, object_store, settings)
        orchestrator = UploadOrchestrator(gateway, ImageProcessor(settings), settings)
        prop = await make_property()

        result = await orchestrator.upload_gallery(EntityKind.PROPERTY, prop.id, [png_file("pool.png")])

        item = result.items[0]
        assert item.state is FileState.LINK_FAILED
        assert item.step == "link"
        assert await object_store.exists("property-images", item.path)
        assert await gallery_rows(gateway, prop.id) == []

    @pytest.mark.asyncio
    async def test_many_failures_summarised_with_ellipsis(
        self, engine, object_store, settings: Settings, make_property, png_file
    ):
        gateway = FailingUploadGateway(engine, object_store, settings)
        gateway.fail_names = ("img1.png", "img2.png", "img3.png", "img4.png")
        orchestrator = UploadOrchestrator(gateway, ImageProcessor(settings), settings)
        prop = await make_property()
        files = [png_file(f"img{n}.png") for n in range(1, 6)]

        result = await orchestrator.upload_gallery(EntityKind.PROPERTY, prop.id, files)

        summary = result.summary()
        assert summary.startswith("1 of 5 gallery images uploaded, 4 failed: img1.png:")
        assert summary.endswith("…")
        assert "img4.png" not in summary

    @pytest.mark.asyncio
    async def test_invalid_file_cancels_whole_batch(
        self, orchestrator: UploadOrchestrator, gateway: StorageGateway, make_property, png_file
    ):
        prop = await make_property()
        files = [
            png_file("a.png"),
            ImageFile(filename="b.gif", content_type="image/gif", data=b"GIF89a"),
            png_file("c.png"),
        ]

        result = await orchestrator.upload_gallery(EntityKind.PROPERTY, prop.id, files)

        assert result.aborted
        assert result.completed == 0
        assert result.failed == 0
        assert len(result.validation_errors) == 1
        assert result.summary().startswith("Gallery upload cancelled: 1 of 3 files failed validation: b.gif:")
        assert await gallery_rows(gateway, prop.id) == []
        assert not (gateway.object_store.base_dir / "property-images").exists()

    @pytest.mark.asyncio
    async def test_files_beyond_limit_skipped_with_warning(
        self, orchestrator: UploadOrchestrator, gateway: StorageGateway, make_property, png_file
    ):
        prop = await make_property()
        files = [png_file(f"img{n}.png", width=8, height=8) for n in range(17)]

        report = await orchestrator.upload_entity_images(EntityKind.PROPERTY, prop.id, gallery=files)

        assert report.gallery.skipped == 2
        assert report.gallery.total == 15
        assert report.gallery.completed == 15
        assert report.warnings == ["Only the first 15 gallery images were processed; 2 skipped"]
        rows = await gallery_rows(gateway, prop.id)
        assert [row.sort_order for row in rows] == list(range(1, 16))

    @pytest.mark.asyncio
    async def test_gallery_not_supported_for_categories(
        self, orchestrator: UploadOrchestrator, make_category, png_file
    ):
        category = await make_category()

        with pytest.raises(ValueError):
            await orchestrator.upload_gallery(EntityKind.CATEGORY, category.id, [png_file()])

    @pytest.mark.asyncio
    async def test_empty_gallery_reports_nothing(self, orchestrator: UploadOrchestrator, make_property):
        prop = await make_property()

        report = await orchestrator.upload_entity_images(EntityKind.PROPERTY, prop.id, gallery=[])

        assert report.gallery is None
        assert report.messages() == []
        assert not report.has_failures


class TestUploadReport:
    """Test aggregated report messages."""

    @pytest.mark.asyncio
    async def test_full_success_messages(self, orchestrator: UploadOrchestrator, make_property, png_file):
        prop = await make_property()

        report = await orchestrator.upload_entity_images(
            EntityKind.PROPERTY, prop.id, hero=png_file("hero.png"), gallery=[png_file("a.png"), png_file("b.png")]
        )

        assert report.messages() == ["Hero image uploaded", "All 2 gallery images uploaded successfully"]
        assert not report.has_failures
        data = report.to_dict()
        assert data["hero"]["state"] == "linked"
        assert data["gallery"]["completed"] == 2

    @pytest.mark.asyncio
    async def test_category_uses_its_own_label(
        self, orchestrator: UploadOrchestrator, gateway: StorageGateway, make_category
    ):
        category = await make_category()
        file = ImageFile(filename="cover.bmp", content_type="image/bmp", data=b"BM")

        report = await orchestrator.upload_entity_images(EntityKind.CATEGORY, category.id, hero=file)

        assert report.messages() == [
            "Category image rejected: Unsupported format. Please use: JPG, JPEG, PNG, WEBP, AVIF"
        ]
