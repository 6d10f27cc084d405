"""
Configuration management using Pydantic settings.
Handles database URL, storage locations, upload policy and search tuning.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application configuration
    app_name: str = "Realty Search API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/realty"
    database_echo: bool = False

    # Object storage
    storage_dir: str = "./storage"
    public_storage_url: str = "http://localhost:8000"

    # JWT configuration (sessions are issued by the hosted auth provider)
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Image validation policy
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    allowed_file_types: List[str] = [
        "image/jpeg", "image/jpg", "image/png", "image/webp", "image/avif"
    ]
    allowed_file_extensions: List[str] = [".jpg", ".jpeg", ".png", ".webp", ".avif"]

    # Image processing
    image_quality: int = 85
    image_max_width: int = 1920
    image_max_height: int = 1080
    image_compress_threshold: int = 10 * 1024 * 1024

    # Upload orchestration
    gallery_max_files: int = 15
    upload_concurrency: int = 2
    upload_batch_delay: float = 0.5
    hero_upload_timeout: float = 60.0
    gallery_upload_timeout: float = 45.0
    link_timeout: float = 15.0
    upload_retry_attempts: int = 1
    upload_retry_base_delay: float = 1.0

    # Gateway reads
    gateway_retry_attempts: int = 3
    gateway_retry_base_delay: float = 0.25

    # Search
    search_debounce_seconds: float = 0.3
    suggestion_min_length: int = 3
    suggestion_limit: int = 5

    # API configuration
    api_v1_prefix: str = "/api/v1"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:3001"]
    max_request_size: int = 160 * 1024 * 1024  # full gallery batch plus hero

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v and v.startswith("sqlite:///"):
            return v.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @field_validator(
        "max_file_size",
        "gallery_max_files",
        "upload_concurrency",
        "upload_retry_attempts",
        "gateway_retry_attempts",
        "suggestion_limit",
    )
    @classmethod
    def validate_positive(cls, v):
        """Limits and counts must be positive."""
        if v <= 0:
            raise ValueError("Value must be greater than 0")
        return v

    @field_validator("image_quality")
    @classmethod
    def validate_quality(cls, v):
        """JPEG/WebP quality is a 1-95 Pillow scale."""
        if not 1 <= v <= 95:
            raise ValueError("Image quality must be between 1 and 95")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()
