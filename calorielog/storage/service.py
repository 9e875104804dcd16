# -*- coding: utf-8 -*-
"""Storage — service facade that picks the provider for the configured tag."""

from __future__ import annotations

from typing import Dict, Optional, Type

from ..config import settings
from .errors import UnsupportedProviderError
from .models import StorageConfig, StorageResult, UploadedFile
from .providers import LocalStorageProvider, StorageProvider

_PROVIDERS: Dict[str, Type[StorageProvider]] = {
    "local": LocalStorageProvider,
}


class StorageService:
    def __init__(self, config: StorageConfig) -> None:
        self.config = config
        provider_cls = _PROVIDERS.get(config.provider)
        if provider_cls is None:
            raise UnsupportedProviderError(f"Unsupported storage provider: {config.provider}")
        self.provider: StorageProvider = provider_cls()

    def initialize(self) -> None:
        self.provider.initialize(self.config)

    def check_file(self, mime_type: str, size: int) -> None:
        self.provider.check_file(mime_type, size)

    def upload_file(self, file: UploadedFile) -> StorageResult:
        return self.provider.upload_file(file)

    def get_file_url(self, file_id: str) -> str:
        return self.provider.get_file_url(file_id)

    def delete_file(self, file_id: str) -> None:
        self.provider.delete_file(file_id)

    def file_exists(self, file_id: str) -> bool:
        return self.provider.file_exists(file_id)


_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Process-wide storage service built from settings (FastAPI dependency)."""
    global _service
    if _service is None:
        service = StorageService(StorageConfig.from_settings(settings))
        service.initialize()
        _service = service
    return _service
