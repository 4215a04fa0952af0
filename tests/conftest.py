from __future__ import annotations

from pathlib import Path

import pytest

from lambda_s3.app.services.bundle import get_service_bundle
from lambda_s3.common.config import Settings, get_settings

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SAMPLE_FILE = "sample_file.csv"
SAMPLE_FILE_BYTES = 369


@pytest.fixture(autouse=True)
def reset_cached_state():
    get_settings.cache_clear()  # type: ignore[attr-defined]
    get_service_bundle.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]
    get_service_bundle.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture(scope="session")
def sample_bytes() -> bytes:
    data = (FIXTURES_DIR / SAMPLE_FILE).read_bytes()
    if len(data) != SAMPLE_FILE_BYTES:
        raise RuntimeError(
            f"should get exactly [{SAMPLE_FILE_BYTES}] bytes from [{SAMPLE_FILE}]"
        )
    return data
