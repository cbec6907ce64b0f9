"""AWS S3 artifact store.

Uploads artifacts to an S3 (or S3-compatible) bucket and returns public URLs.
"""

import logging
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from shared.exceptions import StorageFailure

from . import ArtifactStore

logger = logging.getLogger(__name__)


class S3ArtifactStore(ArtifactStore):
    """AWS S3 artifact store implementation."""

    def __init__(
        self,
        bucket_name: str,
        region_name: str | None = None,
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
        client=None,
    ):
        """Initialize S3 storage.

        Args:
            bucket_name: S3 bucket name
            region_name: AWS region name
            endpoint_url: Custom endpoint URL (for testing/minio)
            public_base_url: URL prefix objects are publicly served from
            client: Preconfigured boto3 S3 client
        """
        self.bucket_name = bucket_name
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

        # Credentials come from the standard AWS environment/profile chain
        self.s3_client = client or boto3.client(
            "s3",
            region_name=region_name,
            endpoint_url=endpoint_url,
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        region = self.region_name or "us-east-1"
        return f"https://{self.bucket_name}.s3.{region}.amazonaws.com/{key}"

    def store(self, data: bytes, content_type: str, key: str) -> str:
        """Upload bytes data to S3."""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name, Key=key, Body=data, ContentType=content_type
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload bytes to S3: {e}")
            raise StorageFailure(f"Failed to upload {key} to s3://{self.bucket_name}: {e}") from e

        logger.info(f"Uploaded bytes to S3: {key}")
        return self.public_url(key)

    def store_file(self, file_path: str | Path, content_type: str, key: str) -> str:
        """Upload a file to S3."""
        try:
            self.s3_client.upload_file(
                str(file_path), self.bucket_name, key, ExtraArgs={"ContentType": content_type}
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload file to S3: {e}")
            raise StorageFailure(f"Failed to upload {key} to s3://{self.bucket_name}: {e}") from e

        logger.info(f"Uploaded file to S3: {key}")
        return self.public_url(key)
