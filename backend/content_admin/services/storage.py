import os
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

# S3
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from content_admin.config import settings
from content_admin.exceptions import AssetNotFoundError, StorageError

logger = logging.getLogger(__name__)


class LocalObjectStorage:
    """
    Filesystem storage for development.
    Objects live under local_media_root and are served from local_media_url.
    """

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or settings.local_media_root)
        self.base_url = (base_url or settings.local_media_url).rstrip("/")

    def _full_path(self, path: str) -> Path:
        full_path = (self.root / path).resolve()
        # Keys like "../x" must not escape the media root
        if self.root.resolve() not in full_path.parents:
            raise StorageError(f"Invalid storage path: {path}")
        return full_path

    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store bytes at path and return the public URL"""
        full_path = self._full_path(path)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)
        except OSError as e:
            logger.error(f"Error writing {path} to local storage: {e}")
            raise StorageError(f"Could not store {path}") from e

        logger.info(f"Stored {path} locally ({len(data)} bytes)")
        return self.get_url(path)

    def get_url(self, path: str) -> str:
        return f"{self.base_url}/{quote(path)}"

    def exists(self, path: str) -> bool:
        return self._full_path(path).is_file()

    def delete(self, path: str):
        full_path = self._full_path(path)
        if not full_path.is_file():
            raise AssetNotFoundError(path)
        try:
            os.remove(full_path)
        except OSError as e:
            logger.error(f"Error deleting {path} from local storage: {e}")
            raise StorageError(f"Could not delete {path}") from e
        logger.info(f"Deleted {path} from local storage")


class S3ObjectStorage:
    """
    S3 storage for diagram images and template PDFs.
    Keys are the storage paths as given, e.g. diagrams/12_1700000000000.png
    """

    def __init__(self, s3_client=None, bucket_name: Optional[str] = None):
        self.bucket_name = bucket_name or settings.s3_bucket_name
        self.s3_client = s3_client

        if self.s3_client is None:
            self.s3_client = boto3.client(
                's3',
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                region_name=settings.aws_region
            )
            logger.info("S3 object storage initialized")

    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Upload object and return its URL"""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=path,
                Body=data,
                ContentType=content_type or 'application/octet-stream',
                CacheControl='public, max-age=31536000'  # 1 year, keys are never reused
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading {path} to S3: {e}")
            raise StorageError(f"Could not upload {path}") from e

        logger.info(f"Uploaded {path} to S3")
        return self.get_url(path)

    def get_url(self, path: str, expiration: int = 3600) -> str:
        """
        Public URL when a public base URL is configured,
        otherwise a presigned URL (valid for 1 hour by default).
        """
        if settings.s3_public_base_url:
            return f"{settings.s3_public_base_url.rstrip('/')}/{quote(path)}"

        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': path},
                ExpiresIn=expiration
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error getting S3 URL for {path}: {e}")
            raise StorageError(f"Could not build URL for {path}") from e

    def exists(self, path: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=path)
            return True
        except ClientError:
            return False
        except BotoCoreError as e:
            logger.error(f"Error checking {path} in S3: {e}")
            raise StorageError(f"Could not reach storage for {path}") from e

    def delete(self, path: str):
        # S3 deletes are silent for missing keys, so look first
        if not self.exists(path):
            raise AssetNotFoundError(path)
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=path)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting {path} from S3: {e}")
            raise StorageError(f"Could not delete {path}") from e
        logger.info(f"Deleted {path} from S3")


def create_storage():
    """Storage backend selected by settings.storage_backend"""
    if settings.storage_backend == "s3":
        return S3ObjectStorage()
    if settings.storage_backend != "local":
        logger.warning(f"Unknown storage backend '{settings.storage_backend}', using local storage")
    return LocalObjectStorage()


# Singleton instance
storage_service = create_storage()
