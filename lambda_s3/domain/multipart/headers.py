"""Case-insensitive access to proxied request headers.

API Gateway forwards header names with whatever casing the client or an
intermediate proxy chose, so ``Content-Type`` may arrive as ``content-type``.
"""

from __future__ import annotations

from typing import Mapping, Sequence

CONTENT_TYPE = "Content-Type"


def find_header(headers: Mapping[str, str] | None, name: str) -> str | None:
    """Return the value of ``name`` from ``headers`` ignoring case.

    Empty or whitespace-only values are reported as missing.
    """
    if not headers:
        return None
    wanted = name.lower()
    for header_name, value in headers.items():
        if header_name is None or header_name.lower() != wanted:
            continue
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return None


def merge_event_headers(
    headers: Mapping[str, str] | None,
    multi_value_headers: Mapping[str, Sequence[str]] | None = None,
) -> dict[str, str]:
    """Flatten an API Gateway event's header maps into one HeaderSet."""
    merged: dict[str, str] = {}
    seen: set[str] = set()
    for name, value in (headers or {}).items():
        if value is None:
            continue
        merged[name] = value
        seen.add(name.lower())
    for name, values in (multi_value_headers or {}).items():
        if name.lower() in seen or not values:
            continue
        merged[name] = values[0]
        seen.add(name.lower())
    return merged
