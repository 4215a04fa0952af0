"""Error taxonomy shared by the decoding pipeline and the storage gateway.

Every failure surfaced by this package is a :class:`LambdaS3Error` carrying an
:class:`ErrorKind`. Callers dispatch on ``exc.kind`` (or ``exc.category``) to
pick an HTTP status or a retry policy; nothing in the package retries.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    CLIENT = "client"
    SERVER = "server"


class ErrorKind(str, Enum):
    CONTENT_TYPE_HEADER_MISSING = "content_type_header_missing"
    INVALID_MEDIA_TYPE = "invalid_media_type"
    BOUNDARY_VALUE_MISSING = "boundary_value_missing"
    INVALID_BODY_ENCODING = "invalid_body_encoding"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    MALFORMED_MULTIPART_BODY = "malformed_multipart_body"
    INVALID_PARAMETERS = "invalid_parameters"
    SESSION_ERROR = "session_error"
    UPLOAD_FAILED = "upload_failed"
    DOWNLOAD_FAILED = "download_failed"
    DELETE_FAILED = "delete_failed"
    EMPTY_OBJECT = "empty_object"


DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.CONTENT_TYPE_HEADER_MISSING: "request contained no Content-Type header",
    ErrorKind.INVALID_MEDIA_TYPE: (
        "error parsing media type from Content-Type header. "
        "Make sure your request is formatted correctly"
    ),
    ErrorKind.BOUNDARY_VALUE_MISSING: (
        "request contained no boundary value in the Content-Type header"
    ),
    ErrorKind.INVALID_BODY_ENCODING: "request body is not valid base64",
    ErrorKind.PAYLOAD_TOO_LARGE: "multipart payload exceeds the maximum allowed size",
    ErrorKind.MALFORMED_MULTIPART_BODY: "reading of multipart form failed",
    ErrorKind.INVALID_PARAMETERS: "required storage parameter is empty",
    ErrorKind.SESSION_ERROR: "error creating storage client session",
    ErrorKind.UPLOAD_FAILED: "unable to upload object to storage",
    ErrorKind.DOWNLOAD_FAILED: "unable to download object from storage",
    ErrorKind.DELETE_FAILED: "unable to delete object from storage",
    ErrorKind.EMPTY_OBJECT: "the requested object is empty",
}

SERVER_KINDS = frozenset(
    {
        ErrorKind.SESSION_ERROR,
        ErrorKind.UPLOAD_FAILED,
        ErrorKind.DOWNLOAD_FAILED,
        ErrorKind.DELETE_FAILED,
        ErrorKind.EMPTY_OBJECT,
    }
)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.SESSION_ERROR: 500,
    ErrorKind.UPLOAD_FAILED: 502,
    ErrorKind.DOWNLOAD_FAILED: 502,
    ErrorKind.DELETE_FAILED: 502,
    ErrorKind.EMPTY_OBJECT: 502,
}


class LambdaS3Error(Exception):
    """Base class for every failure raised by this package."""

    def __init__(self, kind: ErrorKind, message: str | None = None) -> None:
        self.kind = ErrorKind(kind)
        self.message = message or DEFAULT_MESSAGES[self.kind]
        super().__init__(self.message)

    @property
    def category(self) -> ErrorCategory:
        if self.kind in SERVER_KINDS:
            return ErrorCategory.SERVER
        return ErrorCategory.CLIENT

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND.get(self.kind, 400)

    @property
    def error_code(self) -> str:
        return self.kind.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "kind": self.kind.name,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.name}, message={self.message!r})"


class RequestDecodeError(LambdaS3Error):
    """Raised when an inbound request cannot be decoded into file parts."""


class StorageGatewayError(LambdaS3Error):
    """Raised when a storage gateway operation fails or is misused."""
