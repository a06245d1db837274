"""
Runtime configuration helpers for the CI Connect API.

Loads DATABASE_URL, token secrets and object storage settings from the
environment, falling back to the .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Final

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class MissingSecretError(RuntimeError):
    """Raised when a required secret is not configured."""


_PLACEHOLDER_VALUES: Final[set[str]] = {
    "changeme",
    "change-me",
    "placeholder",
    "example",
    "your-key-here",
}


def is_placeholder(value: str | None) -> bool:
    if not value:
        return True
    normalized = value.strip().lower()
    return not normalized or normalized in _PLACEHOLDER_VALUES


def require_secret(value: str | None, name: str) -> str:
    """Return a trimmed secret value or raise :class:`MissingSecretError`."""

    if is_placeholder(value):
        raise MissingSecretError(f"{name} is required and must not use placeholder defaults")
    return value.strip()  # type: ignore[union-attr]


class Settings(BaseSettings):
    # Required field, must come from the environment or .env
    database_url: str = Field(..., alias="DATABASE_URL")

    app_name: str = Field(default="CI Connect", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    # Bearer tokens
    jwt_secret_key: str | None = Field(default=None, alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expires_minutes: int = Field(default=1440, alias="JWT_EXPIRES_MINUTES")

    # S3-compatible object storage
    storage_endpoint_url: str | None = Field(default=None, alias="STORAGE_ENDPOINT_URL")
    storage_region: str | None = Field(default=None, alias="STORAGE_REGION")
    storage_access_key: str | None = Field(default=None, alias="STORAGE_ACCESS_KEY")
    storage_secret_key: str | None = Field(default=None, alias="STORAGE_SECRET_KEY")
    storage_public_base_url: str | None = Field(default=None, alias="STORAGE_PUBLIC_BASE_URL")
    post_images_bucket: str = Field(default="post-images", alias="POST_IMAGES_BUCKET")
    avatars_bucket: str = Field(default="avatars", alias="AVATARS_BUCKET")
    post_image_max_bytes: int = Field(default=5 * 1024 * 1024, alias="POST_IMAGE_MAX_BYTES")
    avatar_max_bytes: int = Field(default=2 * 1024 * 1024, alias="AVATAR_MAX_BYTES")

    # Realtime
    realtime_filter_to_actor: bool = Field(default=False, alias="REALTIME_FILTER_TO_ACTOR")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> list[str]:
        if not self.cors_origins:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["MissingSecretError", "Settings", "get_settings", "is_placeholder", "require_secret"]
