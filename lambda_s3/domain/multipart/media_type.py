"""Strict parser for ``Content-Type`` and ``Content-Disposition`` values.

Grammar (RFC 2045 / RFC 2183)::

    value     := type [ "/" subtype ] *( ";" parameter ) [ ";" ]
    parameter := token "=" ( token | quoted-string )

Anything that does not tokenize cleanly is rejected with
``ErrorKind.INVALID_MEDIA_TYPE``. RFC 2231 extended parameters
(``filename*=utf-8''...``) are decoded when they are not split into
continuations.
"""

from __future__ import annotations

from urllib.parse import unquote

from lambda_s3.common.errors import ErrorKind, RequestDecodeError
from lambda_s3.domain.multipart.models import ContentTypeInfo

TSPECIALS = frozenset('()<>@,;:\\"/[]?=')


def _is_token_char(char: str) -> bool:
    return 32 < ord(char) < 127 and char not in TSPECIALS


def _invalid(raw: str, reason: str) -> RequestDecodeError:
    return RequestDecodeError(
        ErrorKind.INVALID_MEDIA_TYPE, f"invalid media type {raw!r}: {reason}"
    )


def _consume_token(value: str) -> tuple[str, str]:
    index = 0
    while index < len(value) and _is_token_char(value[index]):
        index += 1
    return value[:index], value[index:]


def _consume_quoted(value: str, raw: str) -> tuple[str, str]:
    # value starts right after the opening quote
    chars: list[str] = []
    index = 0
    while index < len(value):
        char = value[index]
        if char == '"':
            return "".join(chars), value[index + 1 :]
        if char in "\r\n":
            raise _invalid(raw, "line break inside quoted string")
        # browsers send raw Windows paths, so only escape special characters
        if char == "\\" and index + 1 < len(value) and value[index + 1] in TSPECIALS:
            index += 1
            char = value[index]
        chars.append(char)
        index += 1
    raise _invalid(raw, "unterminated quoted string")


def _consume_parameter(value: str, raw: str) -> tuple[str, str, str]:
    rest = value.lstrip()
    if not rest.startswith(";"):
        raise _invalid(raw, "expected ';' between parameters")
    rest = rest[1:].lstrip()

    name, rest = _consume_token(rest)
    if not name:
        raise _invalid(raw, "missing parameter name")
    rest = rest.lstrip()
    if not rest.startswith("="):
        raise _invalid(raw, f"parameter {name!r} has no value")
    rest = rest[1:].lstrip()

    if rest.startswith('"'):
        param_value, rest = _consume_quoted(rest[1:], raw)
    else:
        param_value, rest = _consume_token(rest)
        if not param_value:
            raise _invalid(raw, f"parameter {name!r} has an empty value")
    return name.lower(), param_value, rest


def _decode_extended(value: str) -> str | None:
    charset, sep, remainder = value.partition("'")
    if not sep:
        return None
    _language, sep, encoded = remainder.partition("'")
    if not sep:
        return None
    try:
        return unquote(encoded, encoding=charset or "us-ascii", errors="strict")
    except (LookupError, UnicodeDecodeError):
        return None


def parse_content_type(raw: str | None) -> ContentTypeInfo:
    """Split ``raw`` into a lower-cased base type and its parameters."""
    if raw is None:
        raise RequestDecodeError(ErrorKind.INVALID_MEDIA_TYPE, "media type is empty")

    base, sep, remainder = raw.partition(";")
    base = base.strip().lower()

    media_type, rest = _consume_token(base)
    if not media_type:
        raise _invalid(raw, "no media type")
    if rest:
        if not rest.startswith("/"):
            raise _invalid(raw, "expected token after type")
        subtype, rest = _consume_token(rest[1:])
        if not subtype:
            raise _invalid(raw, "expected subtype after '/'")
        if rest:
            raise _invalid(raw, "unexpected content after media type")
        media_type = f"{media_type}/{subtype}"

    parameters: dict[str, str] = {}
    extended: dict[str, str] = {}
    rest = sep + remainder
    while rest.strip():
        if rest.strip() == ";":
            break
        name, value, rest = _consume_parameter(rest, raw)
        target = parameters
        if name.endswith("*") and len(name) > 1:
            target = extended
            name = name[:-1]
        if name in target:
            raise _invalid(raw, f"duplicate parameter {name!r}")
        target[name] = value

    for name, value in extended.items():
        decoded = _decode_extended(value)
        if decoded is None:
            raise _invalid(raw, f"malformed extended parameter {name + '*'!r}")
        parameters[name] = decoded

    return ContentTypeInfo(base_type=media_type, parameters=parameters)
