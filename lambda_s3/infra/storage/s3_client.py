"""S3-compatible storage client implementation.

This module provides an S3-compatible storage client that works with
AWS S3, MinIO, and other S3-compatible object storage services.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, Any, BinaryIO
from urllib.parse import quote, urlsplit

import boto3
from botocore.config import Config

from lambda_s3.infra.storage.client import StorageError, StoredObject

if TYPE_CHECKING:
    from lambda_s3.common.config import Settings


class S3StorageClient:
    """S3-compatible object storage client bound to one region.

    Uploads go through boto3's managed transfer (``upload_fileobj``), which
    switches to a multipart upload for large bodies.
    """

    def __init__(self, *, region: str, settings: "Settings") -> None:
        """Initialize the S3 client for ``region`` with configuration from settings.

        Args:
            region: AWS region the client talks to.
            settings: Settings containing the optional S3 endpoint/credentials.

        Raises:
            StorageError: If the boto3 client cannot be created.
        """
        self._region = region
        self._settings = settings
        self._client = self._build_client(region, settings)

    @property
    def region(self) -> str:
        return self._region

    @staticmethod
    def _build_client(region: str, settings: "Settings") -> Any:
        """Create a boto3 S3 client from settings."""
        addressing_style = (settings.S3_ADDRESSING_STYLE or "virtual").strip().lower()
        config = Config(s3={"addressing_style": addressing_style})

        try:
            return boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                region_name=region,
                aws_access_key_id=settings.S3_ACCESS_KEY_ID,
                aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
                use_ssl=bool(settings.S3_USE_SSL),
                config=config,
            )
        except Exception as exc:
            raise StorageError(f"Failed to create S3 client: {exc}") from exc

    def object_url(self, bucket: str, object_key: str) -> str:
        """Public URL of an object, in the backend's addressing style."""
        quoted_key = quote(object_key, safe="/~")
        style = (self._settings.S3_ADDRESSING_STYLE or "virtual").strip().lower()
        endpoint = self._settings.S3_ENDPOINT_URL
        if endpoint:
            if style == "virtual":
                parts = urlsplit(endpoint)
                return f"{parts.scheme}://{bucket}.{parts.netloc}/{quoted_key}"
            return f"{endpoint.rstrip('/')}/{bucket}/{quoted_key}"
        if style == "path":
            return f"https://s3.{self._region}.amazonaws.com/{bucket}/{quoted_key}"
        return f"https://{bucket}.s3.{self._region}.amazonaws.com/{quoted_key}"

    def put_object(
        self,
        *,
        bucket: str,
        object_key: str,
        body: BinaryIO,
        content_type: str | None = None,
    ) -> StoredObject:
        """Upload a stream to S3 and describe where it landed."""
        if isinstance(body, (bytes, bytearray)):
            body = io.BytesIO(body)
        extra_args: dict[str, Any] = {}
        if content_type:
            extra_args["ContentType"] = content_type

        try:
            self._client.upload_fileobj(
                body, bucket, object_key, ExtraArgs=extra_args or None
            )
        except Exception as exc:
            raise StorageError(f"Failed to upload object: {exc}") from exc

        return StoredObject(
            path=f"{bucket}/{object_key}",
            url=self.object_url(bucket, object_key),
        )

    def get_object(self, *, bucket: str, object_key: str) -> bytes:
        """Download the full content of an object."""
        try:
            response = self._client.get_object(Bucket=bucket, Key=object_key)
            stream = response["Body"]
            try:
                data = stream.read()
            finally:
                stream.close()
        except Exception as exc:
            raise StorageError(f"Failed to download object: {exc}") from exc

        return bytes(data)

    def delete_object(self, *, bucket: str, object_key: str) -> None:
        """Delete an object from storage."""
        try:
            self._client.delete_object(Bucket=bucket, Key=object_key)
        except Exception as exc:
            raise StorageError(f"Failed to delete object: {exc}") from exc
