"""
FastAPI application entry point.
Application factory, lifespan wiring of the Storage Gateway and global error handlers.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from app.config import Settings, get_settings
from app.database import create_engine, create_tables, check_database_connection
from app.middleware import RequestContextMiddleware
from app.repositories.gateway import StorageGateway
from app.routers import (
    search_router,
    properties_router,
    admin_properties_router,
    categories_router,
    admin_categories_router,
    blog_router,
    review_router
)
from app.services.error_handler import register_exception_handlers
from app.utils.exceptions import ServiceUnavailableError
from app.utils.file_utils import ObjectStore

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, gateway: Optional[StorageGateway] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (defaults to the cached environment settings)
        gateway: Pre-built Storage Gateway; when omitted one is created at startup
            and disposed at shutdown

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Creates the Storage Gateway once and shares it through app.state.
        """
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        logger.info(f"Environment: {settings.environment}")

        owns_gateway = app.state.gateway is None
        if owns_gateway:
            engine = create_engine(settings)
            if not await check_database_connection(engine):
                logger.error("Failed to connect to database on startup")
            else:
                await create_tables(engine)
            app.state.gateway = StorageGateway(engine, ObjectStore(settings.storage_dir), settings)

        yield

        logger.info("Shutting down application")
        if owns_gateway:
            await app.state.gateway.close()
            app.state.gateway = None

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
        Property search and content management API for a real-estate website.

        ## Features

        * **Search**: Text search with listing type, price, capacity, amenity, video, featured and age filters
        * **Autocomplete**: Lightweight suggestions for the search box
        * **Image Ingestion**: Validation, AVIF to JPEG conversion, compression and batched gallery uploads
        * **Admin Content**: Properties, categories, blog posts and reviews

        ## Authentication

        Admin endpoints require a bearer token issued by the auth provider with the `admin` role.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Search", "description": "Public property search and filter options"},
            {"name": "Properties", "description": "Public property details"},
            {"name": "Categories", "description": "Public category listing"},
            {"name": "Admin: Properties", "description": "Property management with image uploads"},
            {"name": "Admin: Categories", "description": "Category management"},
            {"name": "Admin: Blog", "description": "Blog post management"},
            {"name": "Admin: Reviews", "description": "Review management"},
            {"name": "Health", "description": "System health endpoints"}
        ],
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gateway = gateway

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(
        RequestContextMiddleware,
        max_request_size=settings.max_request_size,
        enable_request_logging=settings.debug
    )

    # Include API routers
    for router in (
        search_router,
        properties_router,
        categories_router,
        admin_properties_router,
        admin_categories_router,
        blog_router,
        review_router,
    ):
        app.include_router(router, prefix=settings.api_v1_prefix)

    register_exception_handlers(app)

    @app.get("/", tags=["Health"])
    async def root():
        """Basic API information."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.environment,
            "documentation": {
                "swagger_ui": "/docs",
                "redoc": "/redoc",
                "openapi_json": "/openapi.json"
            },
            "api_prefix": settings.api_v1_prefix
        }

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Health check endpoint with database connectivity test.
        Used by container health checks and load balancers.
        """
        gateway = request.app.state.gateway
        if gateway is None or not await check_database_connection(gateway.engine):
            raise ServiceUnavailableError("Database connection failed")
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "database": "connected"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
