# -*- coding: utf-8 -*-
"""Nutrition — Pydantic models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MealType(str, Enum):
    BREAKFAST = "BREAKFAST"
    LUNCH = "LUNCH"
    DINNER = "DINNER"
    SNACK = "SNACK"


class NutritionValues(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    calories: float = Field(0.0, ge=0, description="kcal")
    protein: float = Field(0.0, ge=0, description="grams")
    carbs: float = Field(0.0, ge=0, description="grams")
    fat: float = Field(0.0, ge=0, description="grams")
    fiber: float = Field(0.0, ge=0, description="grams")
    sugar: float = Field(0.0, ge=0, description="grams")
    sodium: float = Field(0.0, ge=0, description="milligrams")


class NutritionSummary(NutritionValues):
    protein_percentage: float = Field(0.0, ge=0, description="Share of calories from protein")
    carbs_percentage: float = Field(0.0, ge=0, description="Share of calories from carbs")
    fat_percentage: float = Field(0.0, ge=0, description="Share of calories from fat")


class FoodLogCreateRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    name: str = Field(..., min_length=1, max_length=200)
    portion: float = Field(..., ge=0, description="Portion size in grams/ml")
    meal_type: MealType
    consumed_at: datetime
    nutrition: Optional[NutritionValues] = None


class FoodLogUpdateRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    portion: Optional[float] = Field(None, ge=0)
    meal_type: Optional[MealType] = None
    consumed_at: Optional[datetime] = None
    nutrition: Optional[NutritionValues] = None


class FoodLog(BaseModel):
    id: str
    user_id: str
    name: str
    portion: float = 0.0
    meal_type: MealType
    consumed_at: datetime
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    nutrition: Optional[NutritionValues] = None
    image_url: Optional[str] = None


class FoodLogListResponse(BaseModel):
    count: int
    items: List[FoodLog]


class FoodLogEntry(BaseModel):
    id: str
    name: str
    portion: float
    meal_type: MealType
    consumed_at: datetime
    nutrition: NutritionValues


class MealSummary(BaseModel):
    totals: NutritionValues = Field(default_factory=NutritionValues)
    item_count: int = Field(0, ge=0)
    items: List[FoodLogEntry] = Field(default_factory=list)


class TargetComparison(BaseModel):
    calories: float
    protein: float
    carbs: float
    fat: float


class NutritionReport(BaseModel):
    start: datetime
    end: datetime
    totals: NutritionSummary
    meals: Dict[str, MealSummary]
    target_comparison: Optional[TargetComparison] = None
    food_logs: List[FoodLogEntry] = Field(default_factory=list)


class GoalCreateRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    calories: float = Field(..., ge=0)
    protein: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)
    fiber: Optional[float] = Field(None, ge=0)
    sugar: Optional[float] = Field(None, ge=0)
    sodium: Optional[float] = Field(None, ge=0)
    start_date: date
    end_date: Optional[date] = Field(None, description="Open-ended when omitted")

    @model_validator(mode="after")
    def _check_window(self) -> "GoalCreateRequest":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class Goal(BaseModel):
    id: str
    user_id: str
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: Optional[float] = None
    sugar: Optional[float] = None
    sodium: Optional[float] = None
    start_date: date
    end_date: Optional[date] = None
    created_at: str


class GoalListResponse(BaseModel):
    count: int
    items: List[Goal]
