# -*- coding: utf-8 -*-
"""Food upload — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse

from ..auth.security import get_current_user
from ..nutrition.models import MealType
from ..storage import FileTooLargeError, FileTypeNotAllowedError, StorageService, get_storage_service
from .analysis import API_ERROR, INVALID_RESPONSE, NO_ANALYSIS, PARSE_ERROR, analyze_food_image
from .models import UploadResponse
from .service import Analyzer, handle_upload

router = APIRouter(prefix="/api/food-upload", tags=["Food Upload"])

_CLIENT_ERROR_CODES = {FileTypeNotAllowedError.code, FileTooLargeError.code}
_UPSTREAM_ERROR_CODES = {API_ERROR, NO_ANALYSIS, PARSE_ERROR, INVALID_RESPONSE}


def get_analyzer() -> Analyzer:
    return analyze_food_image


def _status_for(result: UploadResponse) -> int:
    code = result.error.code if result.error else ""
    if code in _CLIENT_ERROR_CODES:
        return status.HTTP_400_BAD_REQUEST
    if code in _UPSTREAM_ERROR_CODES:
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a food photo, analyze it and log the meal",
)
def upload_food_image(
    file: UploadFile = File(..., description="Food image (JPEG, PNG or GIF)"),
    meal_type: MealType = Form(...),
    user: dict = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
    analyzer: Analyzer = Depends(get_analyzer),
):
    try:
        # One byte past the limit is enough to reject oversized uploads.
        data = file.file.read(storage.config.max_file_size + 1)
    finally:
        file.file.close()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")

    result = handle_upload(
        user_id=user["id"],
        image_bytes=data,
        filename=file.filename or "upload",
        mime_type=file.content_type or "application/octet-stream",
        meal_type=meal_type,
        storage=storage,
        analyzer=analyzer,
    )
    if not result.success:
        return JSONResponse(status_code=_status_for(result), content=result.model_dump(mode="json"))
    return result
