# -*- coding: utf-8 -*-
"""Storage — provider interface and the local filesystem backend."""

from __future__ import annotations

import logging
import re
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from uuid import uuid4

from .errors import (
    FileTooLargeError,
    FileTypeNotAllowedError,
    InvalidProviderError,
    ProviderNotInitializedError,
    StoredFileNotFoundError,
)
from .models import StorageConfig, StorageMetadata, StorageResult, UploadedFile

logger = logging.getLogger(__name__)


def safe_suffix(filename: str) -> str:
    suffix = Path(filename or "").suffix
    if not suffix:
        return ""
    # Keep a conservative suffix to avoid weird filesystem behaviors.
    if len(suffix) > 12:
        return ""
    if not re.fullmatch(r"\.[A-Za-z0-9]+", suffix):
        return ""
    return suffix


class StorageProvider(ABC):
    """Where uploaded file bytes physically live."""

    name: str = ""

    @abstractmethod
    def initialize(self, config: StorageConfig) -> None:
        ...

    @abstractmethod
    def upload_file(self, file: UploadedFile) -> StorageResult:
        ...

    @abstractmethod
    def get_file_url(self, file_id: str) -> str:
        ...

    @abstractmethod
    def delete_file(self, file_id: str) -> None:
        ...

    @abstractmethod
    def file_exists(self, file_id: str) -> bool:
        ...

    def check_file(self, mime_type: str, size: int) -> None:
        """Raise if a file of this type and size would be rejected by upload_file."""
        config = self._require_config()
        if mime_type not in config.allowed_mime_types:
            raise FileTypeNotAllowedError(mime_type)
        if size > config.max_file_size:
            raise FileTooLargeError(size, config.max_file_size)

    def _require_config(self) -> StorageConfig:
        config: Optional[StorageConfig] = getattr(self, "_config", None)
        if config is None:
            raise ProviderNotInitializedError()
        return config


class LocalStorageProvider(StorageProvider):
    name = "local"

    def __init__(self) -> None:
        self._config: Optional[StorageConfig] = None

    @property
    def initialized(self) -> bool:
        return self._config is not None

    def initialize(self, config: StorageConfig) -> None:
        if config.provider != self.name:
            raise InvalidProviderError(f"Invalid provider type for LocalStorageProvider: {config.provider}")
        if config.create_directories:
            config.base_path.mkdir(parents=True, exist_ok=True)
            config.temp_dir.mkdir(parents=True, exist_ok=True)
        self._config = config

    def upload_file(self, file: UploadedFile) -> StorageResult:
        config = self._require_config()
        self.check_file(file.mime_type, file.size)

        file_id = uuid4().hex
        stored_name = f"{file_id}{safe_suffix(file.filename)}"
        dest = config.base_path / stored_name
        shutil.copyfile(file.path, dest)
        logger.info("stored upload %s as %s (%d bytes)", file.filename, stored_name, file.size)

        try:
            Path(file.path).unlink()
        except OSError as exc:
            logger.warning("failed to clean up temp file %s: %s", file.path, exc)

        return StorageResult(
            file_id=file_id,
            url=f"{config.base_url}/{stored_name}",
            provider=self.name,
            metadata=StorageMetadata(
                size=file.size,
                mime_type=file.mime_type,
                filename=file.filename,
                path=str(dest.resolve()),
            ),
        )

    def get_file_url(self, file_id: str) -> str:
        config = self._require_config()
        entry = self._find_entry(config, file_id)
        if entry is None:
            raise StoredFileNotFoundError(file_id)
        return f"{config.base_url}/{entry.name}"

    def delete_file(self, file_id: str) -> None:
        config = self._require_config()
        entry = self._find_entry(config, file_id)
        if entry is None:
            raise StoredFileNotFoundError(file_id)
        entry.unlink()
        logger.info("deleted stored file %s", entry.name)

    def file_exists(self, file_id: str) -> bool:
        config = self._require_config()
        return self._find_entry(config, file_id) is not None

    @staticmethod
    def _find_entry(config: StorageConfig, file_id: str) -> Optional[Path]:
        # Stored names are "<file_id><suffix>"; match the stem exactly, not by prefix.
        if not file_id or "/" in file_id or "\\" in file_id:
            return None
        if not config.base_path.is_dir():
            return None
        for entry in sorted(config.base_path.iterdir()):
            if entry.is_file() and (entry.name == file_id or entry.stem == file_id):
                return entry
        return None
