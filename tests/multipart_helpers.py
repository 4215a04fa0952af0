"""Builders for multipart bodies and API Gateway proxy events used in tests."""

from __future__ import annotations

import base64
from dataclasses import dataclass

BOUNDARY = "---SEAN_BOUNDARY_VALUE"


@dataclass(frozen=True)
class Part:
    name: str
    data: bytes
    filename: str | None = None
    content_type: str | None = None
    disposition: str | None = None


def file_part(
    name: str,
    filename: str,
    data: bytes,
    content_type: str = "application/octet-stream",
) -> Part:
    return Part(name=name, data=data, filename=filename, content_type=content_type)


def field_part(name: str, value: str) -> Part:
    return Part(name=name, data=value.encode("utf-8"))


def build_body(parts: list[Part], boundary: str = BOUNDARY) -> bytes:
    """Encode ``parts`` the way a browser or ``multipart.Writer`` would."""
    chunks: list[bytes] = []
    for index, part in enumerate(parts):
        prefix = b"" if index == 0 else b"\r\n"
        chunks.append(prefix + f"--{boundary}\r\n".encode("latin-1"))
        disposition = part.disposition
        if disposition is None:
            disposition = f'form-data; name="{part.name}"'
            if part.filename is not None:
                disposition += f'; filename="{part.filename}"'
        chunks.append(f"Content-Disposition: {disposition}\r\n".encode("utf-8"))
        if part.content_type:
            chunks.append(f"Content-Type: {part.content_type}\r\n".encode("latin-1"))
        chunks.append(b"\r\n")
        chunks.append(part.data)
    chunks.append(f"\r\n--{boundary}--\r\n".encode("latin-1"))
    return b"".join(chunks)


def content_type_for(boundary: str = BOUNDARY) -> str:
    return f"multipart/form-data; boundary={boundary}"


def proxy_event(
    body: bytes,
    *,
    boundary: str = BOUNDARY,
    header_name: str = "Content-Type",
    base64_encoded: bool = False,
) -> dict:
    """A REST API proxy event carrying ``body``."""
    if base64_encoded:
        encoded_body = base64.b64encode(body).decode("ascii")
    else:
        encoded_body = body.decode("utf-8")
    return {
        "resource": "/upload",
        "path": "/upload",
        "httpMethod": "POST",
        "headers": {header_name: content_type_for(boundary)},
        "multiValueHeaders": {header_name: [content_type_for(boundary)]},
        "queryStringParameters": None,
        "pathParameters": None,
        "requestContext": {"requestId": "test-request", "stage": "test"},
        "body": encoded_body,
        "isBase64Encoded": base64_encoded,
    }
