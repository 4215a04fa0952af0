from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from lambda_s3.common.config import Settings, get_settings

from .request_service import RequestDecodingService
from .storage_service import ClientFactory, StorageService


@dataclass
class ServiceBundle:
    """Lazily constructs application services sharing the same settings.

    A bundle kept at module scope survives warm Lambda invocations, so the
    per-region storage clients (and their connection pools) are reused.
    """

    settings: Settings
    client_factory: ClientFactory | None = None
    _request: RequestDecodingService | None = field(default=None, init=False, repr=False)
    _storage: StorageService | None = field(default=None, init=False, repr=False)

    def request(self) -> RequestDecodingService:
        if self._request is None:
            self._request = RequestDecodingService(self.settings)
        return self._request

    def storage(self) -> StorageService:
        if self._storage is None:
            self._storage = StorageService(
                client_factory=self.client_factory, settings=self.settings
            )
        return self._storage


@lru_cache(maxsize=1)
def get_service_bundle() -> ServiceBundle:
    return ServiceBundle(settings=get_settings())
