# -*- coding: utf-8 -*-
"""Nutrition — report aggregation over food logs."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .models import (
    FoodLog,
    FoodLogEntry,
    Goal,
    MealSummary,
    MealType,
    NutritionReport,
    NutritionSummary,
    NutritionValues,
    TargetComparison,
)

NUTRIENT_FIELDS = ("calories", "protein", "carbs", "fat", "fiber", "sugar", "sodium")

CALORIES_PER_GRAM_PROTEIN = 4.0
CALORIES_PER_GRAM_CARBS = 4.0
CALORIES_PER_GRAM_FAT = 9.0


def _normalize_nutrition(nutrition: Any) -> NutritionValues:
    if nutrition is None:
        return NutritionValues()
    if hasattr(nutrition, "model_dump"):
        data = nutrition.model_dump()
    elif isinstance(nutrition, dict):
        data = nutrition
    else:
        data = {}
    return NutritionValues(**{name: float(data.get(name) or 0.0) for name in NUTRIENT_FIELDS})


def sum_nutrition(values: Iterable[NutritionValues]) -> NutritionValues:
    totals: Dict[str, float] = {name: 0.0 for name in NUTRIENT_FIELDS}
    for value in values:
        for name in NUTRIENT_FIELDS:
            totals[name] += getattr(value, name)
    return NutritionValues(**totals)


def macro_percentage(grams: float, kcal_per_gram: float, total_calories: float) -> float:
    if total_calories <= 0:
        return 0.0
    return grams * kcal_per_gram * 100 / total_calories


def summarize(values: NutritionValues) -> NutritionSummary:
    return NutritionSummary(
        **values.model_dump(),
        protein_percentage=macro_percentage(values.protein, CALORIES_PER_GRAM_PROTEIN, values.calories),
        carbs_percentage=macro_percentage(values.carbs, CALORIES_PER_GRAM_CARBS, values.calories),
        fat_percentage=macro_percentage(values.fat, CALORIES_PER_GRAM_FAT, values.calories),
    )


def to_entry(record: FoodLog) -> FoodLogEntry:
    return FoodLogEntry(
        id=record.id,
        name=record.name,
        portion=record.portion,
        meal_type=record.meal_type,
        consumed_at=record.consumed_at,
        nutrition=_normalize_nutrition(record.nutrition),
    )


def aggregate(
    records: Iterable[FoodLog],
    window_start: datetime,
    window_end: datetime,
    goal: Optional[Goal] = None,
) -> NutritionReport:
    """Build a report from records already scoped to one user and window.

    Records without nutrition count as zero. Each meal bucket is summed on its
    own, so the four bucket totals add up to the overall totals.
    """
    entries = [to_entry(r) for r in records]

    by_meal: Dict[MealType, List[FoodLogEntry]] = {meal: [] for meal in MealType}
    for entry in entries:
        by_meal[entry.meal_type].append(entry)

    meals = {
        meal.value: MealSummary(
            totals=sum_nutrition(e.nutrition for e in items),
            item_count=len(items),
            items=items,
        )
        for meal, items in by_meal.items()
    }

    target = None
    if goal is not None:
        target = TargetComparison(
            calories=goal.calories,
            protein=goal.protein,
            carbs=goal.carbs,
            fat=goal.fat,
        )

    return NutritionReport(
        start=window_start,
        end=window_end,
        totals=summarize(sum_nutrition(e.nutrition for e in entries)),
        meals=meals,
        target_comparison=target,
        food_logs=entries,
    )
