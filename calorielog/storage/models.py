# -*- coding: utf-8 -*-
"""Storage — configuration and result models."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from ..config import Settings


class StorageConfig(BaseModel):
    provider: str = Field("local", description="Backend tag; only 'local' is implemented")
    base_path: Path
    base_url: str
    temp_dir: Path
    max_file_size: int = Field(..., ge=0, description="Upper bound in bytes")
    allowed_mime_types: List[str] = Field(default_factory=list)
    create_directories: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            provider=settings.storage_provider,
            base_path=settings.storage_base_path,
            base_url=settings.storage_base_url,
            temp_dir=settings.storage_temp_dir,
            max_file_size=settings.storage_max_file_size,
            allowed_mime_types=list(settings.storage_allowed_mime_types),
            create_directories=settings.storage_create_directories,
        )


class StorageMetadata(BaseModel):
    size: int
    mime_type: str
    filename: str = Field(..., description="Original client filename")
    path: Optional[str] = Field(None, description="Absolute path of the stored copy")


class StorageResult(BaseModel):
    file_id: str
    url: str
    provider: str
    metadata: StorageMetadata


@dataclass(frozen=True)
class UploadedFile:
    """A file staged on disk, waiting to be moved into storage."""

    path: Path
    filename: str
    mime_type: str
    size: int
