"""
Configuration and settings for the Menufic backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Database (Postgres expected, SQLite works for local runs)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # S3-compatible image storage
    image_bucket: Optional[str] = Field(default=None, validation_alias="IMAGE_BUCKET")
    image_region: Optional[str] = Field(default=None, validation_alias="IMAGE_REGION")
    image_endpoint: Optional[str] = Field(
        default=None, validation_alias="IMAGE_ENDPOINT"
    )
    aws_access_key_id: Optional[str] = Field(
        default=None, validation_alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, validation_alias="AWS_SECRET_ACCESS_KEY"
    )

    # Auth
    google_client_id: Optional[str] = Field(
        default=None, validation_alias="GOOGLE_CLIENT_ID"
    )
    google_client_secret: Optional[str] = Field(
        default=None, validation_alias="GOOGLE_CLIENT_SECRET"
    )
    auth_secret: str = Field(
        default="menufic-dev-secret", validation_alias="AUTH_SECRET"
    )
    test_login_key: Optional[str] = Field(
        default=None, validation_alias="TEST_MENUFIC_USER_LOGIN_KEY"
    )
    # Explicit callback base URL; wins over request headers.
    auth_url: Optional[str] = Field(default=None, validation_alias="AUTH_URL")
    # Deployment URL provided by the hosting platform.
    platform_url: Optional[str] = Field(default=None, validation_alias="URL")
    session_max_age: int = Field(
        default=30 * 24 * 60 * 60, validation_alias="SESSION_MAX_AGE"
    )
    session_update_age: int = Field(
        default=24 * 60 * 60, validation_alias="SESSION_UPDATE_AGE"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="MENUFIC_USE_IN_MEMORY_BACKENDS"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
