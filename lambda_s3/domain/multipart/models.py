"""Value objects produced by the multipart decoding pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import BinaryIO, Iterator, Mapping, Sequence


@dataclass(frozen=True, slots=True)
class ContentTypeInfo:
    """A parsed media type such as ``multipart/form-data; boundary=x``."""

    base_type: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "parameters", MappingProxyType(dict(self.parameters))
        )

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.parameters.get(name.lower(), default)


@dataclass(slots=True)
class FilePart:
    """One uploaded file extracted from a multipart body.

    ``content`` is positioned at offset 0 when handed to the caller. The
    caller owns it from then on and should ``close()`` the part once the
    bytes have been consumed (for example after uploading them).
    """

    field_name: str
    file_name: str
    size_bytes: int
    content: BinaryIO
    content_type: str | None = None

    def read(self) -> bytes:
        self.content.seek(0)
        data = self.content.read()
        self.content.seek(0)
        return data

    def close(self) -> None:
        self.content.close()

    def __repr__(self) -> str:
        return (
            f"FilePart(field_name={self.field_name!r}, file_name={self.file_name!r}, "
            f"size_bytes={self.size_bytes}, content_type={self.content_type!r})"
        )


class DecodedRequest(Sequence[FilePart]):
    """Ordered file parts of one request, at most one per field name."""

    __slots__ = ("_parts",)

    def __init__(self, parts: Sequence[FilePart] = ()) -> None:
        self._parts: tuple[FilePart, ...] = tuple(parts)

    def __getitem__(self, index):  # type: ignore[override]
        return self._parts[index]

    def __len__(self) -> int:
        return len(self._parts)

    def __iter__(self) -> Iterator[FilePart]:
        return iter(self._parts)

    @property
    def field_names(self) -> list[str]:
        return [part.field_name for part in self._parts]

    @property
    def total_bytes(self) -> int:
        return sum(part.size_bytes for part in self._parts)

    def get(self, field_name: str) -> FilePart | None:
        for part in self._parts:
            if part.field_name == field_name:
                return part
        return None

    def close(self) -> None:
        for part in self._parts:
            part.close()

    def __enter__(self) -> "DecodedRequest":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DecodedRequest({list(self._parts)!r})"
