"""Request decoding service.

Turns an API Gateway proxy request (headers, body, ``isBase64Encoded``) into
the uploaded file parts it carries. Each step either succeeds or raises a
:class:`RequestDecodeError`; no partial result is ever returned.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Any, Iterator, Mapping

from lambda_s3.app.services.base import BaseService
from lambda_s3.common.config import Settings
from lambda_s3.common.errors import ErrorKind, RequestDecodeError
from lambda_s3.domain.multipart.decoder import decode_multipart
from lambda_s3.domain.multipart.headers import (
    CONTENT_TYPE,
    find_header,
    merge_event_headers,
)
from lambda_s3.domain.multipart.media_type import parse_content_type
from lambda_s3.domain.multipart.models import DecodedRequest
from lambda_s3.infra.observability.metrics import record_decode

logger = logging.getLogger("lambda_s3.decode")

_BASE64_BODY = re.compile(r"[A-Za-z0-9+/]*={0,2}")


def _invalid_encoding(reason: str) -> RequestDecodeError:
    return RequestDecodeError(
        ErrorKind.INVALID_BODY_ENCODING, f"request body is not valid base64: {reason}"
    )


def iter_base64_chunks(body: str | bytes, chunk_size: int) -> Iterator[bytes]:
    """Decode a base64 body lazily, ``chunk_size`` decoded bytes at a time.

    The whole string is validated up front so a malformed body is reported
    before any multipart parsing happens. Line breaks, as inserted by
    MIME-style encoders, are ignored.
    """
    if isinstance(body, (bytes, bytearray)):
        try:
            body = bytes(body).decode("ascii")
        except UnicodeDecodeError as exc:
            raise _invalid_encoding("non-ASCII characters") from exc
    body = body.strip().replace("\r", "").replace("\n", "")
    if len(body) % 4:
        raise _invalid_encoding("length is not a multiple of 4")
    if not _BASE64_BODY.fullmatch(body):
        raise _invalid_encoding("unexpected characters or padding")

    step = max(4, (chunk_size // 3) * 4)
    for offset in range(0, len(body), step):
        try:
            yield base64.b64decode(body[offset : offset + step], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise _invalid_encoding(str(exc)) from exc


def iter_text_chunks(body: str, encoding: str, chunk_size: int) -> Iterator[bytes]:
    for offset in range(0, len(body), chunk_size):
        try:
            yield body[offset : offset + chunk_size].encode(encoding)
        except UnicodeEncodeError as exc:
            raise RequestDecodeError(
                ErrorKind.INVALID_BODY_ENCODING,
                f"request body cannot be encoded as {encoding}: {exc.reason}",
            ) from exc


class RequestDecodingService(BaseService):
    """Extracts uploaded files from proxied HTTP requests."""

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__(settings)

    def _resolve_max_bytes(self, max_bytes: int | None) -> int:
        if max_bytes is None:
            return int(self.settings.MULTIPART_MAX_BYTES)
        if max_bytes <= 0:
            raise ValueError("max_bytes must be a positive integer")
        return int(max_bytes)

    @staticmethod
    def resolve_boundary(headers: Mapping[str, str] | None) -> str:
        """Return the multipart boundary announced by ``headers``."""
        content_type = find_header(headers, CONTENT_TYPE)
        if content_type is None:
            raise RequestDecodeError(ErrorKind.CONTENT_TYPE_HEADER_MISSING)

        info = parse_content_type(content_type)

        boundary = info.get("boundary")
        if not boundary:
            raise RequestDecodeError(ErrorKind.BOUNDARY_VALUE_MISSING)
        return boundary

    def _body_chunks(
        self, body: str | bytes | None, body_is_base64: bool
    ) -> Iterator[bytes]:
        chunk_size = int(self.settings.MULTIPART_CHUNK_SIZE)
        if body is None:
            body = b""
        if body_is_base64:
            return iter_base64_chunks(body, chunk_size)
        if isinstance(body, (bytes, bytearray)):
            view = bytes(body)
            return (
                view[offset : offset + chunk_size]
                for offset in range(0, len(view), chunk_size)
            )
        return iter_text_chunks(body, self.settings.REQUEST_BODY_ENCODING, chunk_size)

    def decode_request(
        self,
        headers: Mapping[str, str] | None,
        body: str | bytes | None,
        body_is_base64: bool = False,
        max_bytes: int | None = None,
    ) -> DecodedRequest:
        """Decode the file parts of a multipart request.

        Args:
            headers: Request headers; names are matched case-insensitively.
            body: Raw body text (or bytes), or base64 text when
                ``body_is_base64`` is set.
            body_is_base64: Whether ``body`` is base64 encoded.
            max_bytes: Ceiling on decoded content; defaults to
                ``MULTIPART_MAX_BYTES``.

        Returns:
            DecodedRequest with one FilePart per distinct file field.

        Raises:
            RequestDecodeError: On the first failing step.
            ValueError: If ``max_bytes`` is not positive.
        """
        limit = self._resolve_max_bytes(max_bytes)
        try:
            boundary = self.resolve_boundary(headers)
            decoded = decode_multipart(
                self._body_chunks(body, body_is_base64),
                boundary,
                limit,
                max_memory_bytes=int(self.settings.MULTIPART_MAX_MEMORY_BYTES),
            )
        except RequestDecodeError as exc:
            logger.warning(
                "multipart request rejected kind=%s reason=%s",
                exc.kind.value,
                exc.message,
                extra={
                    "extra": {
                        "kind": exc.kind.value,
                        "max_bytes": limit,
                        "base64": bool(body_is_base64),
                    }
                },
            )
            record_decode(exc.kind.value)
            raise

        logger.info(
            "multipart request decoded parts=%d bytes=%d",
            len(decoded),
            decoded.total_bytes,
            extra={
                "extra": {
                    "parts": len(decoded),
                    "bytes": decoded.total_bytes,
                    "fields": decoded.field_names,
                }
            },
        )
        record_decode("ok", decoded.total_bytes)
        return decoded

    def decode_event(
        self, event: Mapping[str, Any], max_bytes: int | None = None
    ) -> DecodedRequest:
        """Decode an API Gateway proxy event (REST or HTTP API payload)."""
        headers = merge_event_headers(
            event.get("headers"), event.get("multiValueHeaders")
        )
        return self.decode_request(
            headers,
            event.get("body"),
            body_is_base64=bool(event.get("isBase64Encoded")),
            max_bytes=max_bytes,
        )
