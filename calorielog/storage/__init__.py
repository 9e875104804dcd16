# -*- coding: utf-8 -*-
"""Storage for uploaded files (local filesystem backend)."""

from .errors import (
    FileTooLargeError,
    FileTypeNotAllowedError,
    InvalidProviderError,
    ProviderNotInitializedError,
    StorageError,
    StoredFileNotFoundError,
    UnsupportedProviderError,
)
from .models import StorageConfig, StorageMetadata, StorageResult, UploadedFile
from .providers import LocalStorageProvider, StorageProvider
from .service import StorageService, get_storage_service

__all__ = [
    "FileTooLargeError",
    "FileTypeNotAllowedError",
    "InvalidProviderError",
    "LocalStorageProvider",
    "ProviderNotInitializedError",
    "StorageConfig",
    "StorageError",
    "StorageMetadata",
    "StorageProvider",
    "StorageResult",
    "StorageService",
    "StoredFileNotFoundError",
    "UnsupportedProviderError",
    "UploadedFile",
    "get_storage_service",
]
