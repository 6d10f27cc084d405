"""
Test configuration and fixtures for the Realty Search API.
Provides an isolated SQLite database and object store per test, data factories
and an HTTP client bound to the application.
"""

import io
import itertools
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncEngine

from app.config import Settings
from app.database import create_engine, create_tables
from app.main import create_app
from app.models.property import ListingType, PropertyStatus
from app.repositories.gateway import StorageGateway
from app.services.image_processor import ImageFile, ImageProcessor
from app.services.search import SearchService
from app.services.upload import UploadOrchestrator
from app.utils.auth import create_access_token
from app.utils.file_utils import ObjectStore


def create_test_image(
    width: int = 64,
    height: int = 48,
    format: str = "PNG",
    mode: str = "RGB",
    color=(200, 40, 40)
) -> bytes:
    """Create a test image in memory."""
    img = Image.new(mode, (width, height), color=color)
    img_bytes = io.BytesIO()
    img.save(img_bytes, format=format)
    return img_bytes.getvalue()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway database and storage directory."""
    return Settings(
        environment="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        storage_dir=str(tmp_path / "storage"),
        public_storage_url="http://storage.test",
        jwt_secret_key="test-secret-key",
        upload_batch_delay=0,
        upload_retry_base_delay=0,
        gateway_retry_base_delay=0,
        hero_upload_timeout=5.0,
        gallery_upload_timeout=5.0,
        link_timeout=5.0,
        search_debounce_seconds=0.05,
    )


@pytest.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine(settings)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def object_store(settings: Settings) -> ObjectStore:
    return ObjectStore(settings.storage_dir)


@pytest.fixture
def gateway(engine: AsyncEngine, object_store: ObjectStore, settings: Settings) -> StorageGateway:
    return StorageGateway(engine, object_store, settings)


@pytest.fixture
def image_processor(settings: Settings) -> ImageProcessor:
    return ImageProcessor(settings)


@pytest.fixture
def orchestrator(gateway: StorageGateway, image_processor: ImageProcessor, settings: Settings) -> UploadOrchestrator:
    return UploadOrchestrator(gateway, image_processor, settings)


@pytest.fixture
def search_service(gateway: StorageGateway, settings: Settings) -> SearchService:
    return SearchService(gateway, settings)


@pytest.fixture
def make_property(gateway: StorageGateway):
    """Factory inserting published rental properties; keyword arguments override columns."""
    counter = itertools.count(1)

    async def factory(**overrides):
        n = next(counter)
        data = {
            "title": f"Test Property {n}",
            "slug": f"test-property-{n}",
            "description": "A comfortable holiday home",
            "specific_location": "Diani",
            "listing_type": ListingType.RENTAL,
            "rental_price": Decimal("10000"),
            "currency": "KES",
            "bedrooms": 2,
            "beds": 2,
            "bathrooms": 1,
            "max_guests": 4,
            "amenities": [],
            "status": PropertyStatus.PUBLISHED,
            "is_active": True,
            "is_featured": False,
        }
        data.update(overrides)
        return await gateway.insert("properties", data)

    return factory


@pytest.fixture
def make_category(gateway: StorageGateway):
    counter = itertools.count(1)

    async def factory(**overrides):
        n = next(counter)
        data = {
            "name": f"Category {n}",
            "slug": f"category-{n}",
            "description": None,
            "is_active": True,
            "sort_order": n,
        }
        data.update(overrides)
        return await gateway.insert("property_categories", data)

    return factory


@pytest.fixture
def png_file():
    """Factory for in-memory PNG candidate files."""
    def factory(filename: str = "photo.png", **kwargs) -> ImageFile:
        return ImageFile(filename=filename, content_type="image/png", data=create_test_image(**kwargs))

    return factory


@pytest.fixture
def admin_headers(settings: Settings) -> dict:
    token = create_access_token("admin-1", "admin@example.com", "admin", settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def editor_headers(settings: Settings) -> dict:
    token = create_access_token("editor-1", "editor@example.com", "editor", settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(settings: Settings, gateway: StorageGateway) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to an application sharing the test gateway."""
    app = create_app(settings, gateway)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
