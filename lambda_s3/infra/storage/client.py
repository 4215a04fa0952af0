"""Storage client protocol and data types.

This module defines the abstract interface for object storage backends.
The decoding pipeline never references a concrete backend; one adapter per
target backend implements :class:`StorageClient`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Protocol


class StorageError(RuntimeError):
    """Raised when object storage operations fail."""


@dataclass(frozen=True, slots=True)
class StoredObject:
    """Location of an object written by ``put_object``."""

    path: str
    url: str


class StorageClient(Protocol):
    """Protocol defining the interface for object storage backends.

    Implementations are bound to one region and must provide all methods
    defined here.
    """

    def put_object(
        self,
        *,
        bucket: str,
        object_key: str,
        body: BinaryIO,
        content_type: str | None = None,
    ) -> StoredObject:
        """Write ``body`` under ``bucket``/``object_key``, replacing any existing object.

        Args:
            bucket: Target bucket name.
            object_key: Object key (path) in the bucket.
            body: Readable binary stream positioned at the first byte to store.
            content_type: MIME type of the object.

        Returns:
            StoredObject with the ``bucket/key`` path and a fully-qualified URL.

        Raises:
            StorageError: If the upload fails.
        """
        ...

    def get_object(self, *, bucket: str, object_key: str) -> bytes:
        """Read the full content of an object.

        Args:
            bucket: Source bucket name.
            object_key: Object key (path) in the bucket.

        Returns:
            The object's bytes, possibly empty.

        Raises:
            StorageError: If the object doesn't exist or the read fails.
        """
        ...

    def delete_object(self, *, bucket: str, object_key: str) -> None:
        """Delete an object from storage.

        Args:
            bucket: Target bucket name.
            object_key: Object key (path) to delete.

        Raises:
            StorageError: If the operation fails.
        """
        ...
