"""Storage service with provider interface (GCS/S3).

Uploads go straight from the client to the bucket; the backend only needs to
resolve the public URL of an uploaded photo, check it exists and delete it when
the photo cannot be registered.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from app.core.config import get_settings, StorageProvider

logger = logging.getLogger(__name__)


class StorageProviderInterface(ABC):
    """Abstract interface for storage providers."""

    @abstractmethod
    def public_url(self, object_path: str) -> str:
        """Public URL of an object."""
        pass

    @abstractmethod
    async def verify_object_exists(self, object_path: str) -> bool:
        """Verify an object exists in storage."""
        pass

    @abstractmethod
    async def delete_object(self, object_path: str) -> bool:
        """Delete an object from storage."""
        pass


class GCSStorageProvider(StorageProviderInterface):
    """Google Cloud Storage provider."""

    def __init__(self, bucket_name: str, project_id: Optional[str] = None):
        self.bucket_name = bucket_name
        self.project_id = project_id
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from google.cloud import storage
            self._client = storage.Client(project=self.project_id)
        return self._client

    @property
    def bucket(self):
        return self.client.bucket(self.bucket_name)

    def public_url(self, object_path: str) -> str:
        return f"https://storage.googleapis.com/{self.bucket_name}/{object_path}"

    async def verify_object_exists(self, object_path: str) -> bool:
        blob = self.bucket.blob(object_path)
        return blob.exists()

    async def delete_object(self, object_path: str) -> bool:
        blob = self.bucket.blob(object_path)
        if blob.exists():
            blob.delete()
            return True
        return False


class S3StorageProvider(StorageProviderInterface):
    """AWS S3 storage provider."""

    def __init__(
        self,
        bucket_name: str,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
    ):
        self.bucket_name = bucket_name
        self.region = region
        self._client = None
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key

    @property
    def client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
        return self._client

    def public_url(self, object_path: str) -> str:
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{object_path}"

    async def verify_object_exists(self, object_path: str) -> bool:
        from botocore.exceptions import ClientError
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=object_path)
            return True
        except ClientError:
            return False

    async def delete_object(self, object_path: str) -> bool:
        from botocore.exceptions import ClientError
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=object_path)
            return True
        except ClientError as e:
            logger.warning(f"[STORAGE] Delete failed for {object_path}: {e}")
            return False


class StorageService:
    """High-level storage service wrapping provider interface."""

    def __init__(self, provider: StorageProviderInterface, public_base_url: Optional[str] = None):
        self.provider = provider
        self.public_base_url = public_base_url

    def public_url(self, object_path: str) -> str:
        path = object_path.lstrip("/")
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{path}"
        return self.provider.public_url(path)

    async def verify_upload(self, object_path: str) -> bool:
        """Verify an upload was completed."""
        return await self.provider.verify_object_exists(object_path)

    async def discard(self, object_path: str) -> bool:
        """Remove an uploaded object that will not be registered."""
        deleted = await self.provider.delete_object(object_path)
        if deleted:
            logger.info(f"[STORAGE] Discarded {object_path}")
        else:
            logger.warning(f"[STORAGE] Could not discard {object_path}")
        return deleted


def get_storage_service() -> StorageService:
    """Factory function to get storage service based on config."""
    settings = get_settings()
    if settings.storage_provider == StorageProvider.GCS:
        provider = GCSStorageProvider(
            bucket_name=settings.bucket_name,
            project_id=settings.gcs_project_id,
        )
    else:
        provider = S3StorageProvider(
            bucket_name=settings.bucket_name,
            region=settings.aws_region or "us-east-1",
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )

    return StorageService(provider, public_base_url=settings.storage_public_base_url)
