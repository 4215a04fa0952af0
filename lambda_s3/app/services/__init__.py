from .base import BaseService
from .bundle import ServiceBundle, get_service_bundle
from .request_service import RequestDecodingService
from .storage_service import StorageService

__all__ = [
    "BaseService",
    "RequestDecodingService",
    "ServiceBundle",
    "StorageService",
    "get_service_bundle",
]
