# -*- coding: utf-8 -*-
"""Storage — error types."""

from __future__ import annotations


class StorageError(Exception):
    code = "STORAGE_ERROR"


class ProviderNotInitializedError(StorageError):
    code = "PROVIDER_NOT_INITIALIZED"

    def __init__(self) -> None:
        super().__init__("Storage provider not initialized")


class InvalidProviderError(StorageError):
    code = "INVALID_PROVIDER"


class UnsupportedProviderError(StorageError):
    code = "UNSUPPORTED_PROVIDER"


class FileTypeNotAllowedError(StorageError):
    code = "FILE_TYPE_NOT_ALLOWED"

    def __init__(self, mime_type: str) -> None:
        super().__init__(f"File type {mime_type} not allowed")
        self.mime_type = mime_type


class FileTooLargeError(StorageError):
    code = "FILE_TOO_LARGE"

    def __init__(self, size: int, max_size: int) -> None:
        super().__init__(f"File size {size} exceeds maximum allowed size {max_size}")
        self.size = size
        self.max_size = max_size


class StoredFileNotFoundError(StorageError):
    code = "FILE_NOT_FOUND"

    def __init__(self, file_id: str) -> None:
        super().__init__(f"File {file_id} not found")
        self.file_id = file_id
