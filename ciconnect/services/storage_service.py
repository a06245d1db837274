"""S3-compatible object storage for post images and avatars."""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from uuid import UUID

from boto3.session import Session
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from ..config import MissingSecretError, get_settings, is_placeholder, require_secret

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageConfig:
    """Runtime configuration extracted from settings."""

    endpoint_url: str
    region: str
    access_key: str
    secret_key: str
    public_base_url: str


@dataclass(frozen=True)
class StoredObject:
    """Metadata returned after uploading an object."""

    bucket: str
    key: str
    url: str
    content_type: str


class StorageConfigurationError(RuntimeError):
    """Raised when required storage settings are missing or invalid."""


class StorageUploadError(RuntimeError):
    """Raised when an upload to object storage fails."""


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    """Read and validate object storage configuration."""

    settings = get_settings()
    required: dict[str, str | None] = {
        "STORAGE_ENDPOINT_URL": settings.storage_endpoint_url,
        "STORAGE_REGION": settings.storage_region,
    }
    missing = [name for name, value in required.items() if is_placeholder(value)]
    if missing:
        raise StorageConfigurationError("Missing required storage configuration: " + ", ".join(sorted(missing)))

    try:
        access_key = require_secret(settings.storage_access_key, "STORAGE_ACCESS_KEY")
        secret_key = require_secret(settings.storage_secret_key, "STORAGE_SECRET_KEY")
    except MissingSecretError as exc:
        raise StorageConfigurationError(str(exc)) from exc

    endpoint_url = str(settings.storage_endpoint_url).strip().rstrip("/")
    if not endpoint_url.startswith(("http://", "https://")):
        endpoint_url = f"https://{endpoint_url.lstrip(':/')}"

    public_base_url = (settings.storage_public_base_url or endpoint_url).strip().rstrip("/")

    return StorageConfig(
        endpoint_url=endpoint_url,
        region=str(settings.storage_region).strip(),
        access_key=access_key,
        secret_key=secret_key,
        public_base_url=public_base_url,
    )


@lru_cache(maxsize=1)
def get_storage_client() -> BaseClient:
    """Create a singleton boto3 client for storage interactions."""

    config = load_storage_config()
    session = Session()
    return session.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
        aws_access_key_id=config.access_key,
        aws_secret_access_key=config.secret_key,
    )


class ObjectStorage:
    """Uploads public-read objects and builds their public URLs.

    Configuration and the boto3 client are resolved on first use, so requests that
    never touch storage do not require it to be configured.
    """

    def __init__(self, client: BaseClient | None = None, config: StorageConfig | None = None) -> None:
        self._client = client
        self._config = config

    @property
    def config(self) -> StorageConfig:
        return self._config or load_storage_config()

    @property
    def client(self) -> BaseClient:
        return self._client or get_storage_client()

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.config.public_base_url}/{bucket}/{key.lstrip('/')}"

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> StoredObject:
        s3_client = self.client

        def _upload() -> None:
            try:
                s3_client.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=data,
                    ContentType=content_type,
                    ACL="public-read",
                )
            except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network bound
                logger.exception("Upload of %s to bucket %s failed", key, bucket)
                raise StorageUploadError("Upload to object storage failed") from exc

        await run_in_threadpool(_upload)
        return StoredObject(bucket=bucket, key=key, url=self.public_url(bucket, key), content_type=content_type)

    async def delete(self, bucket: str, key: str) -> None:
        s3_client = self.client

        def _delete() -> None:
            try:
                s3_client.delete_object(Bucket=bucket, Key=key)
            except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network bound
                raise StorageUploadError(f"Delete of {key} from {bucket} failed") from exc

        await run_in_threadpool(_delete)


def get_object_storage() -> ObjectStorage:
    """FastAPI dependency returning the storage handle used by upload endpoints."""

    return ObjectStorage()


def _file_extension(filename: str | None) -> str:
    extension = Path(filename or "").suffix.lower()
    if extension and not re.fullmatch(r"\.[a-z0-9]{1,10}", extension):
        return ""
    return extension


def image_object_key(user_id: UUID, filename: str | None, *, prefix: str = "") -> str:
    """Build ``{user_id}/{prefix}{millis}{ext}`` so each member owns a folder."""

    millis = int(time.time() * 1000)
    return f"{user_id}/{prefix}{millis}{_file_extension(filename)}"


async def read_image_upload(file: UploadFile, *, max_bytes: int, label: str = "Image") -> tuple[bytes, str]:
    """Read an uploaded image, rejecting non-images and oversized files before any upload."""

    content_type = (file.content_type or "").strip().lower()
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please select a valid image file.")

    data = await file.read()
    if len(data) > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"{label} size must be less than {limit_mb}MB.",
        )
    return data, content_type


async def discard_image(storage: ObjectStorage, stored: StoredObject) -> None:
    """Remove an uploaded object whose database row was never written."""

    try:
        await storage.delete(stored.bucket, stored.key)
    except (StorageConfigurationError, StorageUploadError):
        logger.exception("Orphaned object %s left in bucket %s", stored.key, stored.bucket)
    else:
        logger.warning("Removed object %s from bucket %s after a failed write", stored.key, stored.bucket)


async def store_image(
    storage: ObjectStorage,
    *,
    bucket: str,
    key: str,
    data: bytes,
    content_type: str,
) -> StoredObject:
    """Upload image bytes, translating storage failures into HTTP errors."""

    try:
        return await storage.upload(bucket, key, data, content_type)
    except StorageConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except StorageUploadError as exc:  # pragma: no cover - network bound
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


__all__ = [
    "StorageConfig",
    "StoredObject",
    "StorageConfigurationError",
    "StorageUploadError",
    "ObjectStorage",
    "load_storage_config",
    "get_storage_client",
    "get_object_storage",
    "image_object_key",
    "read_image_upload",
    "store_image",
    "discard_image",
]
