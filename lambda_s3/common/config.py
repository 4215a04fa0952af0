from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

DEFAULT_MULTIPART_MAX_BYTES = 50_000_000
DEFAULT_MULTIPART_MAX_MEMORY_BYTES = 10 * 1024 * 1024
DEFAULT_MULTIPART_CHUNK_SIZE = 64 * 1024

ADDRESSING_STYLES: tuple[str, ...] = ("auto", "virtual", "path")


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Settings:
    MULTIPART_MAX_BYTES: int = DEFAULT_MULTIPART_MAX_BYTES
    MULTIPART_MAX_MEMORY_BYTES: int = DEFAULT_MULTIPART_MAX_MEMORY_BYTES
    MULTIPART_CHUNK_SIZE: int = DEFAULT_MULTIPART_CHUNK_SIZE
    REQUEST_BODY_ENCODING: str = "utf-8"
    STORAGE_ALLOW_EMPTY_OBJECTS: bool = False
    S3_ENDPOINT_URL: str | None = None
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_ADDRESSING_STYLE: str = "virtual"
    S3_USE_SSL: bool = True
    ENABLE_METRICS: bool = True
    LOG_LEVEL: str = "INFO"

    def __post_init__(self) -> None:
        for name in (
            "MULTIPART_MAX_BYTES",
            "MULTIPART_MAX_MEMORY_BYTES",
            "MULTIPART_CHUNK_SIZE",
        ):
            if int(getattr(self, name)) <= 0:
                raise ValueError(f"{name} must be a positive integer.")
        style = (self.S3_ADDRESSING_STYLE or "").strip().lower()
        if style not in ADDRESSING_STYLES:
            raise ValueError(
                f"S3_ADDRESSING_STYLE must be one of {', '.join(ADDRESSING_STYLES)}."
            )
        self.S3_ADDRESSING_STYLE = style
        if self.S3_ENDPOINT_URL:
            self.S3_ENDPOINT_URL = self.S3_ENDPOINT_URL.rstrip("/")

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            MULTIPART_MAX_BYTES=int(
                os.environ.get("MULTIPART_MAX_BYTES", cls.MULTIPART_MAX_BYTES)
            ),
            MULTIPART_MAX_MEMORY_BYTES=int(
                os.environ.get(
                    "MULTIPART_MAX_MEMORY_BYTES", cls.MULTIPART_MAX_MEMORY_BYTES
                )
            ),
            MULTIPART_CHUNK_SIZE=int(
                os.environ.get("MULTIPART_CHUNK_SIZE", cls.MULTIPART_CHUNK_SIZE)
            ),
            REQUEST_BODY_ENCODING=os.environ.get(
                "REQUEST_BODY_ENCODING", cls.REQUEST_BODY_ENCODING
            ),
            STORAGE_ALLOW_EMPTY_OBJECTS=_as_bool(
                os.environ.get("STORAGE_ALLOW_EMPTY_OBJECTS"),
                cls.STORAGE_ALLOW_EMPTY_OBJECTS,
            ),
            S3_ENDPOINT_URL=_as_optional(os.environ.get("S3_ENDPOINT_URL")),
            S3_ACCESS_KEY_ID=_as_optional(os.environ.get("S3_ACCESS_KEY_ID")),
            S3_SECRET_ACCESS_KEY=_as_optional(os.environ.get("S3_SECRET_ACCESS_KEY")),
            S3_ADDRESSING_STYLE=os.environ.get(
                "S3_ADDRESSING_STYLE", cls.S3_ADDRESSING_STYLE
            ),
            S3_USE_SSL=_as_bool(os.environ.get("S3_USE_SSL"), cls.S3_USE_SSL),
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            LOG_LEVEL=os.environ.get("LOG_LEVEL", cls.LOG_LEVEL).upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
