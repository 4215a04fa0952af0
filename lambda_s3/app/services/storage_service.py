"""Storage gateway service for put/get/delete by region, bucket and key.

Every operation validates its parameters before touching a backend, resolves
a per-region :class:`StorageClient`, and translates backend failures into
:class:`StorageGatewayError` kinds. Clients are cached per region for the
lifetime of the service so connection pools are reused across calls.
"""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Callable

from lambda_s3.app.services.base import BaseService
from lambda_s3.common.config import Settings
from lambda_s3.common.errors import ErrorKind, StorageGatewayError
from lambda_s3.domain.multipart.models import FilePart
from lambda_s3.infra.observability.metrics import record_storage
from lambda_s3.infra.storage.client import StorageClient, StorageError, StoredObject
from lambda_s3.infra.storage.s3_client import S3StorageClient

logger = logging.getLogger("lambda_s3.storage")

ClientFactory = Callable[[str], StorageClient]
Content = bytes | bytearray | BinaryIO | FilePart


class StorageService(BaseService):
    """Validating facade over region-bound storage clients."""

    def __init__(
        self,
        *,
        client_factory: ClientFactory | None = None,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(settings)
        self._client_factory = client_factory or self._build_storage_client
        self._clients: dict[str, StorageClient] = {}

    def _build_storage_client(self, region: str) -> StorageClient:
        return S3StorageClient(region=region, settings=self.settings)

    def _client_for(self, region: str, operation: str) -> StorageClient:
        client = self._clients.get(region)
        if client is not None:
            return client
        try:
            client = self._client_factory(region)
        except Exception as exc:
            logger.error(
                "storage session failed operation=%s region=%s",
                operation,
                region,
                exc_info=True,
                extra={"extra": {"operation": operation, "region": region}},
            )
            record_storage(operation, ErrorKind.SESSION_ERROR.value)
            raise StorageGatewayError(
                ErrorKind.SESSION_ERROR,
                f"error creating storage client for region {region}: {exc}",
            ) from exc
        self._clients[region] = client
        return client

    def _validate(self, operation: str, region: str, bucket: str, key: str) -> None:
        try:
            self._ensure_parameter("region", region)
            self._ensure_parameter("bucket", bucket)
            self._ensure_parameter("key", key)
        except StorageGatewayError:
            record_storage(operation, ErrorKind.INVALID_PARAMETERS.value)
            raise

    def _fail(
        self,
        operation: str,
        kind: ErrorKind,
        exc: Exception,
        *,
        region: str,
        bucket: str,
        key: str,
    ) -> StorageGatewayError:
        logger.error(
            "storage %s failed region=%s bucket=%s key=%s",
            operation,
            region,
            bucket,
            key,
            exc_info=exc,
            extra={
                "extra": {
                    "operation": operation,
                    "kind": kind.value,
                    "region": region,
                    "bucket": bucket,
                    "key": key,
                }
            },
        )
        record_storage(operation, kind.value)
        return StorageGatewayError(kind, f"{kind.value}: {exc}")

    def put(
        self,
        region: str,
        bucket: str,
        key: str,
        content: Content,
        *,
        content_type: str | None = None,
    ) -> StoredObject:
        """Store ``content`` under ``bucket``/``key``.

        Raises:
            StorageGatewayError: ``INVALID_PARAMETERS``, ``SESSION_ERROR`` or
                ``UPLOAD_FAILED``.
        """
        self._validate("put", region, bucket, key)
        if isinstance(content, FilePart):
            if content.content.closed:
                record_storage("put", ErrorKind.INVALID_PARAMETERS.value)
                raise StorageGatewayError(
                    ErrorKind.INVALID_PARAMETERS,
                    f"file part {content.field_name!r} is closed",
                )
            content_type = content_type or content.content_type
            body: BinaryIO = content.content
            body.seek(0)
        elif isinstance(content, (bytes, bytearray)):
            body = io.BytesIO(bytes(content))
        else:
            body = content

        client = self._client_for(region, "put")
        try:
            stored = client.put_object(
                bucket=bucket,
                object_key=key,
                body=body,
                content_type=content_type,
            )
        except StorageError as exc:
            raise self._fail(
                "put", ErrorKind.UPLOAD_FAILED, exc, region=region, bucket=bucket, key=key
            ) from exc

        logger.info(
            "storage put path=%s",
            stored.path,
            extra={"extra": {"operation": "put", "region": region, "url": stored.url}},
        )
        record_storage("put", "ok")
        return stored

    def upload_part(
        self, part: FilePart, region: str, bucket: str, key: str
    ) -> StoredObject:
        """Upload one decoded file part, keeping its declared content type."""
        return self.put(region, bucket, key, part)

    def get(
        self,
        region: str,
        bucket: str,
        key: str,
        *,
        allow_empty: bool | None = None,
    ) -> bytes:
        """Read the object stored under ``bucket``/``key``.

        A zero-byte object is an ``EMPTY_OBJECT`` failure unless
        ``allow_empty`` (default ``STORAGE_ALLOW_EMPTY_OBJECTS``) is set.
        """
        self._validate("get", region, bucket, key)
        if allow_empty is None:
            allow_empty = bool(self.settings.STORAGE_ALLOW_EMPTY_OBJECTS)

        client = self._client_for(region, "get")
        try:
            data = client.get_object(bucket=bucket, object_key=key)
        except StorageError as exc:
            raise self._fail(
                "get", ErrorKind.DOWNLOAD_FAILED, exc, region=region, bucket=bucket, key=key
            ) from exc

        if not data and not allow_empty:
            logger.warning(
                "storage get returned an empty object bucket=%s key=%s",
                bucket,
                key,
                extra={"extra": {"operation": "get", "region": region}},
            )
            record_storage("get", ErrorKind.EMPTY_OBJECT.value)
            raise StorageGatewayError(
                ErrorKind.EMPTY_OBJECT, f"the object {bucket}/{key} is empty"
            )

        logger.debug("storage get bucket=%s key=%s bytes=%d", bucket, key, len(data))
        record_storage("get", "ok")
        return data

    def delete(self, region: str, bucket: str, key: str) -> None:
        """Remove the object stored under ``bucket``/``key``."""
        self._validate("delete", region, bucket, key)
        client = self._client_for(region, "delete")
        try:
            client.delete_object(bucket=bucket, object_key=key)
        except StorageError as exc:
            raise self._fail(
                "delete", ErrorKind.DELETE_FAILED, exc, region=region, bucket=bucket, key=key
            ) from exc

        logger.info(
            "storage delete bucket=%s key=%s",
            bucket,
            key,
            extra={"extra": {"operation": "delete", "region": region}},
        )
        record_storage("delete", "ok")
