# -*- coding: utf-8 -*-
"""Food upload — analyze, store and log an uploaded food photo."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional
from uuid import uuid4

from ..nutrition.models import MealType
from ..nutrition.storage import create_food_log
from ..storage import StorageError, StorageService, UploadedFile
from ..storage.providers import safe_suffix
from .analysis import analyze_food_image
from .models import AnalysisOutcome, FoodAnalysisError, UploadResponse

logger = logging.getLogger(__name__)

UPLOAD_ERROR = "UPLOAD_ERROR"

Analyzer = Callable[..., AnalysisOutcome]


def _stage_temp_file(temp_dir: Path, filename: str, data: bytes, *, create_dir: bool = True) -> Path:
    if create_dir:
        temp_dir.mkdir(parents=True, exist_ok=True)
    path = temp_dir / f"{uuid4()}{safe_suffix(filename)}"
    path.write_bytes(data)
    return path


def _failure(code: str, message: str) -> UploadResponse:
    return UploadResponse(success=False, error=FoodAnalysisError(code=code, message=message))


def handle_upload(
    *,
    user_id: str,
    image_bytes: bytes,
    filename: str,
    mime_type: str,
    meal_type: MealType,
    storage: StorageService,
    analyzer: Analyzer = analyze_food_image,
    consumed_at: Optional[datetime] = None,
) -> UploadResponse:
    """Run the upload pipeline; the first failing stage short-circuits the rest.

    Never raises: failures come back as `success=False` with a tagged error.
    """
    try:
        storage.check_file(mime_type, len(image_bytes))
    except StorageError as exc:
        return _failure(exc.code, str(exc))

    temp_path: Optional[Path] = None
    try:
        analysis = analyzer(image_bytes=image_bytes, image_mime=mime_type)
        if isinstance(analysis, FoodAnalysisError):
            return UploadResponse(success=False, error=analysis)

        temp_path = _stage_temp_file(
            storage.config.temp_dir,
            filename,
            image_bytes,
            create_dir=storage.config.create_directories,
        )
        stored = storage.upload_file(
            UploadedFile(path=temp_path, filename=filename, mime_type=mime_type, size=len(image_bytes))
        )
        food_log = create_food_log(
            user_id,
            name=analysis.name,
            portion=analysis.portion,
            meal_type=meal_type.value,
            consumed_at=consumed_at or datetime.now(timezone.utc),
            nutrition=analysis.nutrition.model_dump(),
            image={
                "file_id": stored.file_id,
                "url": stored.url,
                "ai_analysis": analysis.model_dump(),
            },
        )
    except Exception:
        logger.exception("error processing food upload for user %s", user_id)
        return _failure(UPLOAD_ERROR, "Failed to process food upload")
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as exc:
                logger.warning("failed to remove staged upload %s: %s", temp_path, exc)

    return UploadResponse(success=True, storage=stored, analysis=analysis, food_log_id=food_log.id)
