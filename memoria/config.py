"""
Application configuration using Pydantic Settings.
Manages all environment variables and settings.
"""
import os
from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./memoria.db"
DEFAULT_JWT_SECRET_KEY = "jwt-secret-change-in-production"


class Environment(str, Enum):
    """Application environment modes."""
    DEV = "DEV"
    PRODUCTION = "PRODUCTION"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=None, case_sensitive=False)

    # Environment
    environment: Environment = Field(
        default=Environment.DEV,
        description="Application environment: DEV or PRODUCTION"
    )

    # Application
    app_name: str = Field(default="Memoria")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    @model_validator(mode='after')
    def set_debug_from_environment(self):
        """Set debug mode based on environment if not explicitly set via environment variable."""
        if 'DEBUG' not in os.environ:
            self.debug = self.environment == Environment.DEV
        return self

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEV

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    # Database (empty value falls back to the local SQLite file)
    database_url: str = Field(default=DEFAULT_DATABASE_URL)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_timeout: int = Field(default=30)
    db_pool_recycle: int = Field(default=1800)

    @field_validator("database_url", mode="before")
    @classmethod
    def coerce_empty_database_url(cls, v: str) -> str:
        if not v or not str(v).strip():
            return DEFAULT_DATABASE_URL
        return v

    # Identity provider tokens (verified, never trusted as raw input)
    jwt_secret_key: str = Field(default=DEFAULT_JWT_SECRET_KEY)
    jwt_algorithm: str = Field(default="HS256")
    jwt_issuer: Optional[str] = Field(default=None, description="Expected `iss` claim, if any")
    jwt_audience: Optional[str] = Field(default=None, description="Expected `aud` claim, if any")
    access_token_expire_minutes: int = Field(default=60)
    auto_provision_users: bool = Field(
        default=True,
        description="Create the user record from token claims on first authenticated request",
    )

    @model_validator(mode="after")
    def check_production_secret(self):
        """Refuse to start in production with a missing or default token secret."""
        if self.is_production and self.jwt_secret_key in ("", DEFAULT_JWT_SECRET_KEY):
            raise ValueError("JWT_SECRET_KEY must be set in production")
        return self

    # Object storage (S3 compatible)
    storage_bucket: str = Field(default="memoria-photos")
    s3_access_key: str = Field(default="")
    s3_secret_key: str = Field(default="")
    s3_endpoint_url: str = Field(default="")
    s3_region_name: str = Field(default="us-east-1")
    s3_presigned_url_expire_seconds: int = Field(default=3600)
    storage_public_base_url: str = Field(
        default="",
        description="If set, image URLs are built as <base>/<storage_id> instead of presigned GET URLs",
    )

    # Uploads
    max_upload_bytes: int = Field(default=5 * 1024 * 1024)
    allowed_content_types: List[str] = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/gif"]
    )

    # Pagination / search
    default_page_size: int = Field(default=20)
    max_page_size: int = Field(default=100)

    # Rate limiting (search and explore endpoints scan whole tables)
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_per_minute: int = Field(default=120)
    rate_limit_search_per_minute: int = Field(default=30)

    # CORS
    cors_origins: List[str] = Field(default=["*"])

    # Logging / observability
    log_dir: str = Field(default="/var/log/memoria", description="Empty disables file logs")
    instance_ip: str = Field(default="", description="Instance private IP (hostname when empty)")
    node_name: str = Field(default="", description="Node/Pod identifier for Prometheus labels")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Using lru_cache to avoid reading the environment on every request.
    """
    return Settings()
