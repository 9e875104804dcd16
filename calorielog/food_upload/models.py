# -*- coding: utf-8 -*-
"""Food upload — Pydantic models."""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..nutrition.models import NutritionValues
from ..storage.models import StorageResult


class FoodAnalysisResult(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    name: str = Field(..., min_length=1)
    ingredients: List[str] = Field(default_factory=list)
    portion: float = Field(0.0, ge=0, description="Estimated grams for the pictured portion")
    nutrition: NutritionValues = Field(default_factory=NutritionValues)


class FoodAnalysisError(BaseModel):
    code: str
    message: str


AnalysisOutcome = Union[FoodAnalysisResult, FoodAnalysisError]


class UploadResponse(BaseModel):
    success: bool
    storage: Optional[StorageResult] = None
    analysis: Optional[FoodAnalysisResult] = None
    error: Optional[FoodAnalysisError] = None
    food_log_id: Optional[str] = None
