# -*- coding: utf-8 -*-
"""Nutrition — API endpoints (food logs, goals, reports)."""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..auth.security import get_current_user
from ..storage import StorageService, StoredFileNotFoundError, get_storage_service
from .aggregator import aggregate
from .models import (
    FoodLog,
    FoodLogCreateRequest,
    FoodLogListResponse,
    FoodLogUpdateRequest,
    Goal,
    GoalCreateRequest,
    GoalListResponse,
    NutritionReport,
)
from .storage import (
    create_food_log,
    create_goal,
    delete_food_log,
    get_active_goal,
    get_food_log,
    get_image_file_id,
    list_food_logs,
    list_goals,
    update_food_log,
)
from .windows import Window, daily_window, monthly_window, parse_date, range_window, weekly_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/nutrition", tags=["Nutrition"])


def _parse_date_or_400(value: str, field: str) -> date:
    try:
        return parse_date(value, field=field)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _window_or_400(build, *args) -> Window:
    try:
        return build(*args)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _build_report(user_id: str, window: Window, first_day: date, last_day: date) -> NutritionReport:
    start, end = window
    records = list_food_logs(user_id, start=start, end=end)
    goal = get_active_goal(user_id, first_day, last_day)
    return aggregate(records, start, end, goal)


@router.post(
    "/food-logs",
    response_model=FoodLog,
    status_code=status.HTTP_201_CREATED,
    summary="Create a food log entry",
)
def create_food_log_api(request: FoodLogCreateRequest, user: dict = Depends(get_current_user)):
    return create_food_log(
        user["id"],
        name=request.name,
        portion=request.portion,
        meal_type=request.meal_type.value,
        consumed_at=request.consumed_at,
        nutrition=request.nutrition.model_dump() if request.nutrition else None,
    )


@router.get("/food-logs", response_model=FoodLogListResponse, summary="List my food logs")
def list_food_logs_api(
    start: str | None = Query(default=None, description="YYYY-MM-DD"),
    end: str | None = Query(default=None, description="YYYY-MM-DD"),
    user: dict = Depends(get_current_user),
):
    start_dt: Optional[datetime] = None
    end_dt: Optional[datetime] = None
    if start:
        start_dt = datetime.combine(_parse_date_or_400(start, "start"), datetime.min.time())
    if end:
        end_day = _parse_date_or_400(end, "end")
        end_dt = datetime.combine(end_day + timedelta(days=1), datetime.min.time()) - timedelta(seconds=1)
    items = list_food_logs(user["id"], start=start_dt, end=end_dt)
    return FoodLogListResponse(count=len(items), items=items)


@router.get("/food-logs/{food_log_id}", response_model=FoodLog, summary="Get a food log entry")
def get_food_log_api(food_log_id: str, user: dict = Depends(get_current_user)):
    found = get_food_log(user["id"], food_log_id)
    if not found:
        raise HTTPException(status_code=404, detail="Food log not found")
    return found


@router.patch("/food-logs/{food_log_id}", response_model=FoodLog, summary="Update a food log entry")
def update_food_log_api(
    food_log_id: str,
    request: FoodLogUpdateRequest,
    user: dict = Depends(get_current_user),
):
    changes = request.model_dump(exclude_unset=True, exclude={"nutrition"})
    if "meal_type" in changes and changes["meal_type"] is not None:
        changes["meal_type"] = request.meal_type.value  # type: ignore[union-attr]
    updated = update_food_log(
        user["id"],
        food_log_id,
        changes=changes,
        nutrition=request.nutrition.model_dump() if request.nutrition else None,
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Food log not found")
    return updated


@router.delete("/food-logs/{food_log_id}", summary="Delete a food log entry")
def delete_food_log_api(
    food_log_id: str,
    user: dict = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
):
    file_id = get_image_file_id(user["id"], food_log_id)
    if not delete_food_log(user["id"], food_log_id):
        raise HTTPException(status_code=404, detail="Food log not found")
    if file_id:
        try:
            storage.delete_file(file_id)
        except StoredFileNotFoundError:
            logger.warning("image %s of food log %s already gone", file_id, food_log_id)
    return {"status": "ok", "food_log_id": food_log_id}


@router.post("/goals", response_model=Goal, status_code=status.HTTP_201_CREATED, summary="Set a nutrition goal")
def create_goal_api(request: GoalCreateRequest, user: dict = Depends(get_current_user)):
    return create_goal(user["id"], **request.model_dump())


@router.get("/goals", response_model=GoalListResponse, summary="List my nutrition goals")
def list_goals_api(user: dict = Depends(get_current_user)):
    items = list_goals(user["id"])
    return GoalListResponse(count=len(items), items=items)


@router.get("/reports/daily", response_model=NutritionReport, summary="Daily nutrition report")
def daily_report(
    date_: str = Query(..., alias="date", description="YYYY-MM-DD"),
    tz: str | None = Query(default=None, alias="timezone", description="IANA timezone, e.g. Europe/Berlin"),
    user: dict = Depends(get_current_user),
):
    day = _parse_date_or_400(date_, "date")
    window = _window_or_400(daily_window, day, tz)
    return _build_report(user["id"], window, day, day)


@router.get("/reports/weekly", response_model=NutritionReport, summary="Weekly nutrition report (Mon-Sun)")
def weekly_report(
    date_: str = Query(..., alias="date", description="Any day of the week, YYYY-MM-DD"),
    tz: str | None = Query(default=None, alias="timezone"),
    user: dict = Depends(get_current_user),
):
    day = _parse_date_or_400(date_, "date")
    window = _window_or_400(weekly_window, day, tz)
    monday = day - timedelta(days=day.weekday())
    return _build_report(user["id"], window, monday, monday + timedelta(days=6))


@router.get("/reports/monthly", response_model=NutritionReport, summary="Monthly nutrition report")
def monthly_report(
    year: int = Query(...),
    month: int = Query(...),
    tz: str | None = Query(default=None, alias="timezone"),
    user: dict = Depends(get_current_user),
):
    window = _window_or_400(monthly_window, year, month, tz)
    first_day = date(year, month, 1)
    last_day = date(year, month, calendar.monthrange(year, month)[1])
    return _build_report(user["id"], window, first_day, last_day)


@router.get("/reports/range", response_model=NutritionReport, summary="Nutrition report for a date range")
def range_report(
    start_date: str = Query(..., alias="startDate", description="YYYY-MM-DD"),
    end_date: str = Query(..., alias="endDate", description="YYYY-MM-DD"),
    tz: str | None = Query(default=None, alias="timezone"),
    user: dict = Depends(get_current_user),
):
    first_day = _parse_date_or_400(start_date, "startDate")
    last_day = _parse_date_or_400(end_date, "endDate")
    window = _window_or_400(range_window, first_day, last_day, tz)
    return _build_report(user["id"], window, first_day, last_day)
