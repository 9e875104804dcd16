# -*- coding: utf-8 -*-
"""Centralized configuration, read from the environment once at import."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List

_DEFAULT_MIME_TYPES = "image/jpeg,image/png,image/gif"


def _split_csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_flag(name: str, default: bool) -> bool:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    return raw in {"1", "true", "True", "yes"}


class Settings:
    """Settings for the calorie-tracking backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent

        self.data_root: Path = Path(
            os.environ.get("CALORIELOG_DATA_ROOT") or (repo_root / "data")
        ).expanduser()
        self.app_db_path: Path = Path(
            os.environ.get("CALORIELOG_DB_PATH") or (self.data_root / "calorielog.db")
        ).expanduser()
        self.log_level: str = (os.environ.get("CALORIELOG_LOG_LEVEL") or "INFO").upper()

        # In production you MUST set CALORIELOG_JWT_SECRET; the fallback only keeps local runs easy.
        self.jwt_secret: str = os.environ.get("CALORIELOG_JWT_SECRET") or "dev-secret-change-me"
        self.token_ttl_days: int = int(os.environ.get("CALORIELOG_TOKEN_TTL_DAYS") or "7")
        self.cookie_secure: bool = _env_flag("CALORIELOG_COOKIE_SECURE", False)
        # Emails registered with these addresses start out as ADMIN.
        self.admin_emails: List[str] = [
            e.lower() for e in _split_csv(os.environ.get("CALORIELOG_ADMIN_EMAILS") or "")
        ]

        # ---- Storage provider ----
        self.storage_provider: str = os.environ.get("STORAGE_PROVIDER") or "local"
        self.storage_base_path: Path = Path(
            os.environ.get("STORAGE_BASE_PATH") or (self.data_root / "uploads")
        ).expanduser()
        self.storage_base_url: str = (
            os.environ.get("STORAGE_BASE_URL") or "http://localhost:8000/uploads"
        ).rstrip("/")
        self.storage_temp_dir: Path = Path(
            os.environ.get("STORAGE_TEMP_DIR") or (self.data_root / "temp")
        ).expanduser()
        self.storage_max_file_mb: float = float(os.environ.get("STORAGE_MAX_FILE_MB") or "5")
        self.storage_allowed_mime_types: List[str] = _split_csv(
            os.environ.get("STORAGE_ALLOWED_MIME_TYPES") or _DEFAULT_MIME_TYPES
        )
        self.storage_create_directories: bool = _env_flag("STORAGE_CREATE_DIRECTORIES", True)

        # ---- Food image analysis (OpenAI-compatible chat completions) ----
        self.analysis_api_key: str | None = os.environ.get("OPENAI_API_KEY")
        self.analysis_base_url: str = (
            os.environ.get("OPENAI_BASE_URL") or "https://api.openai.com/v1"
        ).rstrip("/")
        self.analysis_model: str = os.environ.get("FOOD_ANALYSIS_MODEL") or "gpt-4o"
        self.analysis_timeout: float = float(os.environ.get("FOOD_ANALYSIS_TIMEOUT") or "60")
        self.analysis_max_tokens: int = int(os.environ.get("FOOD_ANALYSIS_MAX_TOKENS") or "500")

        cors = os.environ.get("CALORIELOG_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = _split_csv(cors)

    @property
    def storage_max_file_size(self) -> int:
        return int(self.storage_max_file_mb * 1024 * 1024)


settings = Settings()
