"""S3-compatible object store wrapper.

This module provides an async wrapper around aioboto3 for the public
asset bucket (idea and franchise cover images, avatars).
"""

from typing import Any, Dict, Optional

import aioboto3
import structlog
from botocore.config import Config
from botocore.exceptions import ClientError

logger = structlog.get_logger(__name__)


class ObjectStore:
    """Async object store client using aioboto3."""

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: Optional[str],
        secret_key: Optional[str],
        region: str = "us-east-1",
        public_base_url: Optional[str] = None,
        max_pool_connections: int = 20,
    ):
        """
        Initialize the object store client.

        Args:
            endpoint_url: S3 endpoint (e.g., http://minio:9000); None for AWS
            access_key: Access key ID
            secret_key: Secret access key
            region: Region name (default: us-east-1)
            public_base_url: Public URL of the asset bucket
            max_pool_connections: Maximum connection pool size
        """
        self.endpoint_url = endpoint_url
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region
        self.public_base_url = (public_base_url or "").rstrip("/")

        self.config = Config(
            max_pool_connections=max_pool_connections,
            retries={
                'max_attempts': 3,
                'mode': 'adaptive'
            }
        )

        self.session = aioboto3.Session()

    def get_client(self):
        """
        Get an async S3 client context manager.

        Usage:
            async with store.get_client() as s3:
                await s3.put_object(...)
        """
        return self.session.client(
            's3',
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
            config=self.config
        )

    def public_url(self, key: str) -> str:
        """Public URL of an object in the public-read asset bucket."""
        return f"{self.public_base_url}/{key}"

    async def create_bucket(self, bucket_name: str) -> bool:
        """
        Create a bucket if it doesn't exist.

        Returns:
            True if bucket was created, False if it already existed
        """
        try:
            async with self.get_client() as s3:
                await s3.create_bucket(Bucket=bucket_name)
                logger.info("bucket_created", bucket=bucket_name)
                return True
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            if error_code in ('BucketAlreadyOwnedByYou', 'BucketAlreadyExists'):
                logger.debug("bucket_already_exists", bucket=bucket_name)
                return False
            logger.error("bucket_creation_failed", bucket=bucket_name, error=str(e))
            raise

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Store an object.

        Args:
            bucket: Bucket name
            key: Object key (path)
            data: Object data (bytes)
            content_type: MIME type served with the object
            metadata: Optional object metadata

        Returns:
            Response from S3 PutObject
        """
        extra: Dict[str, Any] = {"Metadata": metadata or {}}
        if content_type:
            extra["ContentType"] = content_type
        try:
            async with self.get_client() as s3:
                response = await s3.put_object(Bucket=bucket, Key=key, Body=data, **extra)
                logger.debug(
                    "object_uploaded",
                    bucket=bucket,
                    key=key,
                    size_bytes=len(data)
                )
                return response
        except ClientError as e:
            logger.error(
                "object_upload_failed",
                bucket=bucket,
                key=key,
                error=str(e)
            )
            raise

    async def delete_object(self, bucket: str, key: str) -> None:
        """
        Delete an object. Deleting a missing key succeeds.

        Args:
            bucket: Bucket name
            key: Object key
        """
        try:
            async with self.get_client() as s3:
                await s3.delete_object(Bucket=bucket, Key=key)
                logger.debug("object_deleted", bucket=bucket, key=key)
        except ClientError as e:
            logger.error(
                "object_deletion_failed",
                bucket=bucket,
                key=key,
                error=str(e)
            )
            raise
