"""Bridge API Gateway proxy requests on AWS Lambda to S3.

Uploaded files are extracted from the multipart body of the proxied request,
then stored, fetched or deleted by region, bucket and key::

    parts = lambda_s3.decode_event(event)
    stored = lambda_s3.upload_part(parts[0], "us-east-2", "my-bucket", "uploads/a.csv")

The module-level functions share one lazily built :class:`ServiceBundle`.
"""

from __future__ import annotations

from typing import Any, Mapping

from lambda_s3.app.services import (
    RequestDecodingService,
    ServiceBundle,
    StorageService,
    get_service_bundle,
)
from lambda_s3.common.errors import (
    ErrorCategory,
    ErrorKind,
    LambdaS3Error,
    RequestDecodeError,
    StorageGatewayError,
)
from lambda_s3.domain.multipart.headers import find_header
from lambda_s3.domain.multipart.media_type import parse_content_type
from lambda_s3.domain.multipart.decoder import decode_multipart
from lambda_s3.domain.multipart.models import ContentTypeInfo, DecodedRequest, FilePart
from lambda_s3.infra.storage.client import StoredObject

__all__ = [
    "ContentTypeInfo",
    "DecodedRequest",
    "ErrorCategory",
    "ErrorKind",
    "FilePart",
    "LambdaS3Error",
    "RequestDecodeError",
    "RequestDecodingService",
    "ServiceBundle",
    "StorageGatewayError",
    "StorageService",
    "StoredObject",
    "decode_event",
    "decode_multipart",
    "decode_request",
    "delete",
    "find_header",
    "get",
    "parse_content_type",
    "put",
    "upload_part",
]


def decode_request(
    headers: Mapping[str, str] | None,
    body: str | bytes | None,
    body_is_base64: bool = False,
    max_bytes: int | None = None,
) -> DecodedRequest:
    return get_service_bundle().request().decode_request(
        headers, body, body_is_base64=body_is_base64, max_bytes=max_bytes
    )


def decode_event(event: Mapping[str, Any], max_bytes: int | None = None) -> DecodedRequest:
    return get_service_bundle().request().decode_event(event, max_bytes=max_bytes)


def put(region: str, bucket: str, key: str, content: Any) -> StoredObject:
    return get_service_bundle().storage().put(region, bucket, key, content)


def upload_part(part: FilePart, region: str, bucket: str, key: str) -> StoredObject:
    return get_service_bundle().storage().upload_part(part, region, bucket, key)


def get(region: str, bucket: str, key: str, *, allow_empty: bool | None = None) -> bytes:
    return get_service_bundle().storage().get(region, bucket, key, allow_empty=allow_empty)


def delete(region: str, bucket: str, key: str) -> None:
    get_service_bundle().storage().delete(region, bucket, key)
