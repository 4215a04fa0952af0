from .decoder import MAX_PART_HEADER_BYTES, MultipartDecoder, decode_multipart
from .headers import CONTENT_TYPE, find_header, merge_event_headers
from .media_type import parse_content_type
from .models import ContentTypeInfo, DecodedRequest, FilePart

__all__ = [
    "CONTENT_TYPE",
    "ContentTypeInfo",
    "DecodedRequest",
    "FilePart",
    "MAX_PART_HEADER_BYTES",
    "MultipartDecoder",
    "decode_multipart",
    "find_header",
    "merge_event_headers",
    "parse_content_type",
]
