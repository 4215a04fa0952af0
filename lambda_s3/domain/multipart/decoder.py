"""Streaming ``multipart/form-data`` decoder.

The body is pushed through :class:`python_multipart.multipart.MultipartParser`
one chunk at a time. Part content is counted as it arrives and decoding stops
with ``PAYLOAD_TOO_LARGE`` before a chunk that would cross the ceiling is
buffered, so at most ``max_bytes`` of content is ever held. File content is
written into python-multipart ``File`` objects, which spill to a temporary
file once ``max_memory_bytes`` is exceeded.

A preamble before the first delimiter and transport padding after delimiter
lines are removed by :class:`DelimiterFilter`, since the parser accepts
neither.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Iterable

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import File, MultipartParser

from lambda_s3.common.config import (
    DEFAULT_MULTIPART_CHUNK_SIZE,
    DEFAULT_MULTIPART_MAX_MEMORY_BYTES,
)
from lambda_s3.common.errors import ErrorKind, RequestDecodeError
from lambda_s3.domain.multipart.media_type import parse_content_type
from lambda_s3.domain.multipart.models import DecodedRequest, FilePart

logger = logging.getLogger("lambda_s3.decode")

MAX_PART_HEADER_BYTES = 16 * 1024
MAX_PREAMBLE_BYTES = MAX_PART_HEADER_BYTES

_LWSP = b" \t"

Body = bytes | bytearray | memoryview | Iterable[bytes]


def _malformed(reason: str) -> RequestDecodeError:
    return RequestDecodeError(
        ErrorKind.MALFORMED_MULTIPART_BODY, f"reading of multipart form failed: {reason}"
    )


def _decode_header_bytes(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def _base_name(file_name: str) -> str:
    return posixpath.basename(file_name.replace("\\", "/")) or file_name


class DelimiterFilter:
    """Normalizes delimiter lines before they reach ``MultipartParser``.

    Bytes ahead of the first delimiter line (the preamble) are discarded, as
    is linear whitespace between a delimiter and the line break ending it.
    Between writes only a tail that could begin a delimiter is held back.
    """

    def __init__(self, boundary: bytes) -> None:
        self._delimiter = b"\r\n--" + boundary
        # a leading line break lets the first delimiter match like the others
        self._buffer = b"\r\n"
        self._in_preamble = True
        self._strip_leading = True

    def _padding_end(self, data: bytes, start: int, final: bool) -> int | None:
        """Index past the padding that follows a boundary ending at ``start``.

        ``None`` means more input is needed, ``-1`` that the match is not a
        delimiter line.
        """
        end = start
        while end < len(data) and data[end] in _LWSP:
            end += 1
        if end - start > MAX_PART_HEADER_BYTES:
            raise _malformed("padding after boundary is too long")
        tail = data[end : end + 2]
        if len(tail) < 2:
            return -1 if final else None
        if tail == b"\r\n" or (tail == b"--" and end == start):
            return end
        return -1

    def _skip_preamble(self, final: bool) -> bool:
        search = 0
        while True:
            index = self._buffer.find(self._delimiter, search)
            if index < 0:
                break
            end = self._padding_end(self._buffer, index + len(self._delimiter), final)
            if end is None:
                break
            if end >= 0:
                self._buffer = self._buffer[index:]
                self._in_preamble = False
                return True
            search = index + 1

        if final:
            raise _malformed("no boundary delimiter found")
        if len(self._buffer) > MAX_PREAMBLE_BYTES + len(self._delimiter):
            raise _malformed(
                f"no boundary delimiter within the first {MAX_PREAMBLE_BYTES} bytes"
            )
        return False

    def _drain(self, final: bool) -> bytes:
        data = self._buffer
        out: list[bytes] = []
        pos = 0
        while True:
            index = data.find(self._delimiter, pos)
            if index < 0:
                break
            boundary_end = index + len(self._delimiter)
            end = self._padding_end(data, boundary_end, final)
            if end is None:
                out.append(data[pos:index])
                self._buffer = data[index:]
                return self._emit(out)
            out.append(data[pos:boundary_end])
            pos = boundary_end if end < 0 else end

        keep = 0 if final else min(len(data) - pos, len(self._delimiter) - 1)
        out.append(data[pos : len(data) - keep])
        self._buffer = data[len(data) - keep :]
        return self._emit(out)

    def _emit(self, out: list[bytes]) -> bytes:
        data = b"".join(out)
        if self._strip_leading and data:
            # the first delimiter owns no line break
            data = data[2:]
            self._strip_leading = False
        return data

    def feed(self, chunk: bytes) -> bytes:
        self._buffer += chunk
        if self._in_preamble and not self._skip_preamble(final=False):
            return b""
        return self._drain(final=False)

    def flush(self) -> bytes:
        if self._in_preamble:
            self._skip_preamble(final=True)
        return self._drain(final=True)


class MultipartDecoder:
    """Incremental decoder for one multipart body.

    Feed raw chunks with :meth:`write` and collect the result with
    :meth:`finish`. An instance decodes exactly one body.
    """

    def __init__(
        self,
        boundary: str | bytes,
        max_bytes: int,
        *,
        max_memory_bytes: int = DEFAULT_MULTIPART_MAX_MEMORY_BYTES,
    ) -> None:
        if not boundary:
            raise ValueError("boundary must not be empty")
        if max_bytes <= 0:
            raise ValueError("max_bytes must be a positive integer")
        if isinstance(boundary, str):
            boundary = boundary.encode("latin-1")

        self.max_bytes = int(max_bytes)
        self.max_memory_bytes = int(max_memory_bytes)
        self.consumed_bytes = 0

        self._parts: list[FilePart] = []
        self._seen_fields: set[str] = set()
        self._complete = False
        self._finished = False

        self._headers: dict[str, str] = {}
        self._header_name: list[bytes] = []
        self._header_value: list[bytes] = []
        self._header_bytes = 0

        self._file: File | None = None
        self._field_name: str | None = None
        self._file_name: str | None = None
        self._content_type: str | None = None

        self._delimiters = DelimiterFilter(boundary)
        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_end": self._on_end,
            },
        )

    # parser callbacks

    def _on_part_begin(self) -> None:
        self._headers = {}
        self._header_name = []
        self._header_value = []
        self._header_bytes = 0
        self._file = None
        self._field_name = None
        self._file_name = None
        self._content_type = None

    def _count_header_bytes(self, size: int) -> None:
        self._header_bytes += size
        if self._header_bytes > MAX_PART_HEADER_BYTES:
            raise _malformed(
                f"part header block exceeds {MAX_PART_HEADER_BYTES} bytes"
            )

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._count_header_bytes(end - start)
        self._header_name.append(data[start:end])

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._count_header_bytes(end - start)
        self._header_value.append(data[start:end])

    def _on_header_end(self) -> None:
        name = b"".join(self._header_name).decode("latin-1").strip().lower()
        value = _decode_header_bytes(b"".join(self._header_value)).strip()
        self._header_name = []
        self._header_value = []
        # first occurrence wins, as with repeated MIME headers
        self._headers.setdefault(name, value)

    def _on_headers_finished(self) -> None:
        disposition = self._headers.get("content-disposition")
        if not disposition:
            return
        try:
            info = parse_content_type(disposition)
        except RequestDecodeError as exc:
            raise _malformed(f"invalid Content-Disposition: {exc.message}") from exc
        if info.base_type != "form-data":
            return

        field_name = info.get("name")
        if not field_name:
            return
        file_name = info.get("filename")
        if not file_name:
            # plain form field: counted toward the ceiling, not retained
            return
        if field_name in self._seen_fields:
            logger.debug(
                "multipart duplicate file field dropped field=%s",
                field_name,
                extra={"extra": {"field_name": field_name, "file_name": file_name}},
            )
            return

        self._seen_fields.add(field_name)
        self._field_name = field_name
        self._file_name = _base_name(file_name)
        self._content_type = self._headers.get("content-type") or None
        self._file = File(
            self._file_name.encode("utf-8"),
            field_name.encode("utf-8"),
            config={"MAX_MEMORY_FILE_SIZE": self.max_memory_bytes},
        )

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        size = end - start
        if self.consumed_bytes + size > self.max_bytes:
            self.consumed_bytes += size
            raise RequestDecodeError(
                ErrorKind.PAYLOAD_TOO_LARGE,
                "reading of multipart form failed: payload exceeds "
                f"max_bytes={self.max_bytes}",
            )
        self.consumed_bytes += size
        if self._file is not None:
            self._file.write(data[start:end])

    def _on_part_end(self) -> None:
        if self._file is None:
            return
        current = self._file
        self._file = None
        current.finalize()
        content = current.file_object
        content.seek(0)
        self._parts.append(
            FilePart(
                field_name=self._field_name or "",
                file_name=self._file_name or "",
                size_bytes=current.size,
                content=content,
                content_type=self._content_type,
            )
        )

    def _on_end(self) -> None:
        self._complete = True

    # public API

    def _feed_parser(self, data: bytes) -> None:
        if not data:
            return
        try:
            self._parser.write(data)
        except MultipartParseError as exc:
            raise _malformed(str(exc)) from exc

    def write(self, chunk: bytes) -> int:
        if self._finished:
            raise RuntimeError("decoder already finished")
        if not chunk:
            return 0
        self._feed_parser(self._delimiters.feed(bytes(chunk)))
        return len(chunk)

    def finish(self) -> DecodedRequest:
        self._finished = True
        self._feed_parser(self._delimiters.flush())
        self._parser.finalize()
        if not self._complete:
            raise _malformed("body is missing its closing boundary")
        return DecodedRequest(self._parts)

    def abort(self) -> None:
        """Release every buffer created so far."""
        self._finished = True
        if self._file is not None:
            self._file.close()
            self._file = None
        for part in self._parts:
            part.close()
        self._parts = []


def iter_chunks(body: Body, chunk_size: int) -> Iterable[bytes]:
    if isinstance(body, (bytes, bytearray, memoryview)):
        view = memoryview(body)
        for offset in range(0, len(view), chunk_size):
            yield bytes(view[offset : offset + chunk_size])
        return
    for chunk in body:
        if chunk:
            yield chunk


def decode_multipart(
    body: Body,
    boundary: str | bytes,
    max_bytes: int,
    *,
    max_memory_bytes: int = DEFAULT_MULTIPART_MAX_MEMORY_BYTES,
    chunk_size: int = DEFAULT_MULTIPART_CHUNK_SIZE,
) -> DecodedRequest:
    """Decode a complete multipart body into its file parts.

    Args:
        body: Raw body bytes, or an iterable yielding raw chunks.
        boundary: Boundary token from the ``Content-Type`` header.
        max_bytes: Ceiling on the total content of all parts.
        max_memory_bytes: Per-file threshold before spooling to disk.
        chunk_size: Feed size used when ``body`` is a bytes object.

    Returns:
        DecodedRequest with one FilePart per distinct file field.

    Raises:
        RequestDecodeError: ``PAYLOAD_TOO_LARGE`` or
            ``MALFORMED_MULTIPART_BODY``; no partial result is returned.
    """
    decoder = MultipartDecoder(boundary, max_bytes, max_memory_bytes=max_memory_bytes)
    try:
        for chunk in iter_chunks(body, chunk_size):
            decoder.write(chunk)
        return decoder.finish()
    except BaseException:
        decoder.abort()
        raise
