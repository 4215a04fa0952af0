from __future__ import annotations

from lambda_s3.common.config import Settings, get_settings
from lambda_s3.common.errors import ErrorKind, StorageGatewayError


class BaseService:
    """Provides guard rails and helpers shared by application services."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    def _ensure_parameter(self, name: str, value: str | None) -> str:
        if value is None or not str(value).strip():
            raise StorageGatewayError(
                ErrorKind.INVALID_PARAMETERS, f"required parameter {name} is empty"
            )
        return value
