"""Tests for the streaming multipart decoder."""

from __future__ import annotations

import io

import pytest
from python_multipart.multipart import File

from lambda_s3.common.errors import ErrorKind, RequestDecodeError
from lambda_s3.domain.multipart import decoder as decoder_module
from lambda_s3.domain.multipart.decoder import (
    MAX_PART_HEADER_BYTES,
    MAX_PREAMBLE_BYTES,
    MultipartDecoder,
    decode_multipart,
)
from tests.multipart_helpers import (
    BOUNDARY,
    Part,
    build_body,
    field_part,
    file_part,
)

MAX_BYTES = 50_000_000


def _chunks(data: bytes, size: int):
    for offset in range(0, len(data), size):
        yield data[offset : offset + size]


class TestDecodeMultipart:
    def test_single_file_part(self, sample_bytes):
        body = build_body([file_part("sample_file", "sample_file.csv", sample_bytes)])

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert len(decoded) == 1
        part = decoded[0]
        assert part.field_name == "sample_file"
        assert part.file_name == "sample_file.csv"
        assert part.size_bytes == 369
        assert part.content_type == "application/octet-stream"
        assert part.read() == sample_bytes

    def test_short_boundary(self, sample_bytes):
        body = build_body([file_part("upload", "sample_file.csv", sample_bytes)], boundary="---X")

        decoded = decode_multipart(body, "---X", MAX_BYTES)

        assert [p.size_bytes for p in decoded] == [369]
        assert decoded.get("upload").read() == sample_bytes

    @pytest.mark.parametrize("chunk_size", [1, 3, 7, 64, 1024])
    def test_chunk_boundaries_do_not_change_result(self, sample_bytes, chunk_size):
        body = build_body(
            [
                field_part("note", "hello"),
                file_part("first", "a.csv", sample_bytes),
                file_part("second", "b.bin", b"\r\n--" + b"x" * 10 + b"\r\n"),
            ]
        )

        decoded = decode_multipart(_chunks(body, chunk_size), BOUNDARY, MAX_BYTES)

        assert decoded.field_names == ["first", "second"]
        assert decoded.get("first").read() == sample_bytes
        assert decoded.get("second").read() == b"\r\n--" + b"x" * 10 + b"\r\n"

    def test_parts_keep_body_order(self):
        body = build_body(
            [
                file_part("zeta", "z.txt", b"z"),
                file_part("alpha", "a.txt", b"a"),
                file_part("mid", "m.txt", b"m"),
            ]
        )

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert decoded.field_names == ["zeta", "alpha", "mid"]

    def test_form_fields_are_excluded(self):
        body = build_body([field_part("title", "report"), file_part("doc", "d.txt", b"doc")])

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert decoded.field_names == ["doc"]

    def test_empty_filename_is_a_form_field(self):
        body = build_body([file_part("doc", "", b"nothing selected")])

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert len(decoded) == 0

    def test_part_without_name_is_skipped(self):
        body = build_body(
            [Part(name="", data=b"x", disposition='form-data; filename="x.txt"')]
        )

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert len(decoded) == 0

    def test_non_form_data_disposition_is_skipped(self):
        body = build_body(
            [Part(name="", data=b"x", disposition='attachment; name="f"; filename="x.txt"')]
        )

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert len(decoded) == 0

    def test_duplicate_field_keeps_first_file(self):
        body = build_body(
            [
                file_part("upload", "one.txt", b"first"),
                file_part("upload", "two.txt", b"second"),
            ]
        )

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert len(decoded) == 1
        assert decoded[0].file_name == "one.txt"
        assert decoded[0].read() == b"first"

    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("dir/sub/report.csv", "report.csv"),
            ("C:\\Users\\me\\report.csv", "report.csv"),
            ("../../etc/passwd", "passwd"),
        ],
    )
    def test_file_name_is_reduced_to_base_name(self, filename, expected):
        body = build_body([file_part("upload", filename, b"data")])

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert decoded[0].file_name == expected

    def test_empty_body_with_closing_boundary_has_no_parts(self):
        decoded = decode_multipart(f"--{BOUNDARY}--\r\n".encode(), BOUNDARY, MAX_BYTES)

        assert len(decoded) == 0

    def test_large_file_spools_to_disk(self):
        payload = bytes(range(256)) * 8
        body = build_body([file_part("upload", "big.bin", payload)])

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES, max_memory_bytes=100)

        part = decoded[0]
        assert not isinstance(part.content, io.BytesIO)
        assert part.size_bytes == len(payload)
        assert part.read() == payload
        decoded.close()

    def test_context_manager_closes_parts(self):
        body = build_body([file_part("upload", "a.txt", b"abc")])

        with decode_multipart(body, BOUNDARY, MAX_BYTES) as decoded:
            content = decoded[0].content

        assert content.closed


class TestSizeCeiling:
    def test_exact_ceiling_is_accepted(self):
        body = build_body([file_part("upload", "a.bin", b"a" * 100)])

        decoded = decode_multipart(body, BOUNDARY, 100)

        assert decoded[0].size_bytes == 100

    def test_one_byte_over_is_rejected(self):
        body = build_body([file_part("upload", "a.bin", b"a" * 101)])

        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(body, BOUNDARY, 100)

        assert exc_info.value.kind is ErrorKind.PAYLOAD_TOO_LARGE

    def test_form_fields_count_toward_ceiling(self):
        body = build_body([field_part("note", "n" * 60), file_part("upload", "a.bin", b"a" * 60)])

        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(body, BOUNDARY, 100)

        assert exc_info.value.kind is ErrorKind.PAYLOAD_TOO_LARGE

    def test_never_buffers_more_than_ceiling(self, monkeypatch):
        written: list[int] = []

        class RecordingFile(File):
            def write(self, data: bytes) -> int:
                written.append(len(data))
                return super().write(data)

        monkeypatch.setattr(decoder_module, "File", RecordingFile)
        body = build_body([file_part("upload", "big.bin", b"x" * 10_000)])

        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(_chunks(body, 512), BOUNDARY, 1_000)

        assert exc_info.value.kind is ErrorKind.PAYLOAD_TOO_LARGE
        assert sum(written) <= 1_000

    def test_stops_reading_once_ceiling_is_crossed(self):
        body = build_body([file_part("upload", "big.bin", b"x" * 10_000)])
        consumed: list[int] = []

        def source():
            for chunk in _chunks(body, 256):
                consumed.append(len(chunk))
                yield chunk

        with pytest.raises(RequestDecodeError):
            decode_multipart(source(), BOUNDARY, 1_000)

        assert sum(consumed) < len(body)

    def test_rejects_non_positive_ceiling(self):
        with pytest.raises(ValueError):
            MultipartDecoder(BOUNDARY, 0)


class TestDelimiterLines:
    @pytest.mark.parametrize("chunk_size", [1, 7, 65_536])
    def test_preamble_is_discarded(self, chunk_size):
        body = b"This is a preamble.\r\n" + build_body([file_part("f", "a.txt", b"abc")])

        decoded = decode_multipart(_chunks(body, chunk_size), BOUNDARY, MAX_BYTES)

        assert decoded.field_names == ["f"]
        assert decoded[0].read() == b"abc"

    def test_preamble_may_contain_boundary_lookalikes(self):
        body = f"--{BOUNDARY}x is not a delimiter\r\n".encode() + build_body(
            [file_part("f", "a.txt", b"abc")]
        )

        decoded = decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert decoded[0].read() == b"abc"

    @pytest.mark.parametrize("chunk_size", [1, 3, 65_536])
    def test_padding_after_delimiter_is_ignored(self, chunk_size):
        body = build_body(
            [file_part("first", "a.txt", b"abc"), file_part("second", "b.txt", b"def")]
        ).replace(f"--{BOUNDARY}\r\n".encode(), f"--{BOUNDARY} \t \r\n".encode())

        decoded = decode_multipart(_chunks(body, chunk_size), BOUNDARY, MAX_BYTES)

        assert [part.read() for part in decoded] == [b"abc", b"def"]

    def test_content_resembling_a_delimiter_is_kept(self):
        data = f"line\r\n--{BOUNDARY}x\r\nmore".encode()
        body = build_body([file_part("f", "a.txt", data)])

        decoded = decode_multipart(_chunks(body, 5), BOUNDARY, MAX_BYTES)

        assert decoded[0].read() == data

    def test_preamble_length_is_capped(self):
        body = b"x" * (MAX_PREAMBLE_BYTES + 100) + build_body(
            [file_part("f", "a.txt", b"abc")]
        )

        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert exc_info.value.kind is ErrorKind.MALFORMED_MULTIPART_BODY


class TestMalformedBodies:
    @pytest.mark.parametrize(
        "body",
        [
            b"",
            b"\r\n",
            b"this is not multipart",
            b"--some-other-boundary\r\nContent-Disposition: form-data; name=\"a\"\r\n\r\nx\r\n--some-other-boundary--\r\n",
        ],
    )
    def test_missing_boundary(self, body):
        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert exc_info.value.kind is ErrorKind.MALFORMED_MULTIPART_BODY

    def test_truncated_body(self, sample_bytes):
        body = build_body([file_part("upload", "a.csv", sample_bytes)])

        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(body[: len(body) // 2], BOUNDARY, MAX_BYTES)

        assert exc_info.value.kind is ErrorKind.MALFORMED_MULTIPART_BODY

    def test_missing_closing_boundary(self):
        body = build_body([file_part("upload", "a.txt", b"abc")])
        body = body[: body.rindex(b"--\r\n")]

        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert exc_info.value.kind is ErrorKind.MALFORMED_MULTIPART_BODY

    def test_unparseable_header_line(self):
        body = (
            f"--{BOUNDARY}\r\n"
            "Content Disposition form-data\r\n"
            "\r\n"
            "x\r\n"
            f"--{BOUNDARY}--\r\n"
        ).encode()

        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert exc_info.value.kind is ErrorKind.MALFORMED_MULTIPART_BODY

    def test_unparseable_content_disposition(self):
        body = build_body(
            [Part(name="", data=b"x", disposition='form-data; name="unterminated')]
        )

        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert exc_info.value.kind is ErrorKind.MALFORMED_MULTIPART_BODY

    def test_oversized_header_block(self):
        body = build_body(
            [
                Part(
                    name="",
                    data=b"x",
                    disposition='form-data; name="f"; filename="'
                    + "a" * (MAX_PART_HEADER_BYTES + 1)
                    + '"',
                )
            ]
        )

        with pytest.raises(RequestDecodeError) as exc_info:
            decode_multipart(body, BOUNDARY, MAX_BYTES)

        assert exc_info.value.kind is ErrorKind.MALFORMED_MULTIPART_BODY

    def test_failure_closes_already_decoded_parts(self, monkeypatch):
        created: list[File] = []

        class TrackingFile(File):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                created.append(self)

        monkeypatch.setattr(decoder_module, "File", TrackingFile)
        body = build_body(
            [file_part("first", "a.txt", b"abc"), file_part("second", "b.txt", b"def")]
        )

        with pytest.raises(RequestDecodeError):
            decode_multipart(body[:-10], BOUNDARY, MAX_BYTES)

        assert created
        assert all(f.file_object.closed for f in created)


class TestMultipartDecoder:
    def test_incremental_writes(self, sample_bytes):
        body = build_body([file_part("upload", "a.csv", sample_bytes)])
        decoder = MultipartDecoder(BOUNDARY, MAX_BYTES)

        for chunk in _chunks(body, 50):
            decoder.write(chunk)
        decoded = decoder.finish()

        assert decoded[0].read() == sample_bytes
        assert decoder.consumed_bytes == len(sample_bytes)

    def test_write_after_finish_fails(self):
        decoder = MultipartDecoder(BOUNDARY, MAX_BYTES)
        decoder.write(f"--{BOUNDARY}--\r\n".encode())
        decoder.finish()

        with pytest.raises(RuntimeError):
            decoder.write(b"more")

    def test_rejects_empty_boundary(self):
        with pytest.raises(ValueError):
            MultipartDecoder("", MAX_BYTES)
