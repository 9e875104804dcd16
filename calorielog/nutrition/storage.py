# -*- coding: utf-8 -*-
"""Nutrition — SQLite storage for food logs, nutrition values, images and goals."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from .aggregator import NUTRIENT_FIELDS
from .models import FoodLog, Goal, NutritionValues

_FOOD_LOG_SELECT = """
    SELECT f.*,
           n.food_log_id AS n_food_log_id,
           n.calories, n.protein, n.carbs, n.fat, n.fiber, n.sugar, n.sodium,
           i.url AS image_url
    FROM food_logs f
    LEFT JOIN nutrition_info n ON n.food_log_id = f.id
    LEFT JOIN food_images i ON i.food_log_id = f.id
"""


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def to_db_datetime(value: datetime) -> str:
    """Naive UTC, second precision; lexical order matches time order."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0).isoformat(timespec="seconds")


def _row_to_food_log(row: Dict[str, Any]) -> FoodLog:
    nutrition = None
    if row.get("n_food_log_id"):
        nutrition = NutritionValues(**{name: float(row.get(name) or 0.0) for name in NUTRIENT_FIELDS})
    return FoodLog(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        portion=float(row.get("portion") or 0.0),
        meal_type=row["meal_type"],
        consumed_at=datetime.fromisoformat(row["consumed_at"]),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        nutrition=nutrition,
        image_url=row.get("image_url"),
    )


def _nutrition_params(food_log_id: str, nutrition: Dict[str, Any]) -> tuple:
    return (food_log_id, *[float(nutrition.get(name) or 0.0) for name in NUTRIENT_FIELDS])


def _upsert_nutrition(conn, food_log_id: str, nutrition: Dict[str, Any]) -> None:
    conn.execute(
        """
        INSERT INTO nutrition_info (food_log_id, calories, protein, carbs, fat, fiber, sugar, sodium)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(food_log_id) DO UPDATE SET
            calories = excluded.calories,
            protein = excluded.protein,
            carbs = excluded.carbs,
            fat = excluded.fat,
            fiber = excluded.fiber,
            sugar = excluded.sugar,
            sodium = excluded.sodium
        """,
        _nutrition_params(food_log_id, nutrition),
    )


def _fetch_food_log(conn, user_id: str, food_log_id: str) -> Optional[FoodLog]:
    row = conn.execute(
        _FOOD_LOG_SELECT + " WHERE f.id = ? AND f.user_id = ?",
        (food_log_id, user_id),
    ).fetchone()
    return _row_to_food_log(dict(row)) if row else None


def create_food_log(
    user_id: str,
    *,
    name: str,
    portion: float,
    meal_type: str,
    consumed_at: datetime,
    nutrition: Optional[Dict[str, Any]] = None,
    image: Optional[Dict[str, Any]] = None,
) -> FoodLog:
    """Insert a food log with its nutrition and image rows in one transaction."""
    food_log_id = str(uuid4())
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO food_logs (id, user_id, name, portion, meal_type, consumed_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (food_log_id, user_id, name, float(portion), meal_type, to_db_datetime(consumed_at), now, now),
        )
        if nutrition is not None:
            _upsert_nutrition(conn, food_log_id, nutrition)
        if image is not None:
            conn.execute(
                """
                INSERT INTO food_images (food_log_id, file_id, url, ai_analysis_json, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    food_log_id,
                    image["file_id"],
                    image["url"],
                    json.dumps(image.get("ai_analysis"), ensure_ascii=False) if image.get("ai_analysis") else None,
                    now,
                ),
            )
        created = _fetch_food_log(conn, user_id, food_log_id)
    assert created is not None
    return created


def get_food_log(user_id: str, food_log_id: str) -> Optional[FoodLog]:
    with db_conn(settings.app_db_path) as conn:
        return _fetch_food_log(conn, user_id, food_log_id)


def list_food_logs(
    user_id: str,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[FoodLog]:
    """Food logs of one user whose consumed_at falls in [start, end], oldest first."""
    sql = _FOOD_LOG_SELECT + " WHERE f.user_id = ?"
    params: List[Any] = [user_id]
    if start is not None:
        sql += " AND f.consumed_at >= ?"
        params.append(to_db_datetime(start))
    if end is not None:
        sql += " AND f.consumed_at <= ?"
        params.append(to_db_datetime(end))
    sql += " ORDER BY f.consumed_at ASC, f.created_at ASC"
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(sql, tuple(params)).fetchall()
        return [_row_to_food_log(dict(r)) for r in rows]


def update_food_log(
    user_id: str,
    food_log_id: str,
    *,
    changes: Dict[str, Any],
    nutrition: Optional[Dict[str, Any]] = None,
) -> Optional[FoodLog]:
    allowed = {"name", "portion", "meal_type", "consumed_at"}
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT id FROM food_logs WHERE id = ? AND user_id = ?",
            (food_log_id, user_id),
        ).fetchone()
        if not row:
            return None

        sets: List[str] = []
        params: List[Any] = []
        for key, value in changes.items():
            if key not in allowed or value is None:
                continue
            if key == "consumed_at":
                value = to_db_datetime(value)
            elif key == "portion":
                value = float(value)
            sets.append(f"{key} = ?")
            params.append(value)
        sets.append("updated_at = ?")
        params.append(_utc_now())
        conn.execute(
            f"UPDATE food_logs SET {', '.join(sets)} WHERE id = ? AND user_id = ?",
            (*params, food_log_id, user_id),
        )
        if nutrition is not None:
            _upsert_nutrition(conn, food_log_id, nutrition)
        return _fetch_food_log(conn, user_id, food_log_id)


def get_image_file_id(user_id: str, food_log_id: str) -> Optional[str]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            """
            SELECT i.file_id FROM food_images i
            JOIN food_logs f ON f.id = i.food_log_id
            WHERE f.id = ? AND f.user_id = ?
            """,
            (food_log_id, user_id),
        ).fetchone()
        return row["file_id"] if row else None


def delete_food_log(user_id: str, food_log_id: str) -> bool:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "DELETE FROM food_logs WHERE id = ? AND user_id = ?",
            (food_log_id, user_id),
        )
        return cur.rowcount > 0


def _row_to_goal(row: Dict[str, Any]) -> Goal:
    return Goal(
        id=row["id"],
        user_id=row["user_id"],
        calories=float(row.get("calories") or 0.0),
        protein=float(row.get("protein") or 0.0),
        carbs=float(row.get("carbs") or 0.0),
        fat=float(row.get("fat") or 0.0),
        fiber=row.get("fiber"),
        sugar=row.get("sugar"),
        sodium=row.get("sodium"),
        start_date=date.fromisoformat(row["start_date"]),
        end_date=date.fromisoformat(row["end_date"]) if row.get("end_date") else None,
        created_at=row["created_at"],
    )


def create_goal(
    user_id: str,
    *,
    calories: float,
    protein: float,
    carbs: float,
    fat: float,
    start_date: date,
    end_date: Optional[date] = None,
    fiber: Optional[float] = None,
    sugar: Optional[float] = None,
    sodium: Optional[float] = None,
) -> Goal:
    goal_id = str(uuid4())
    now = _utc_now()
    row = {
        "id": goal_id,
        "user_id": user_id,
        "calories": float(calories),
        "protein": float(protein),
        "carbs": float(carbs),
        "fat": float(fat),
        "fiber": fiber,
        "sugar": sugar,
        "sodium": sodium,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat() if end_date else None,
        "created_at": now,
    }
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO goals (
                id, user_id, calories, protein, carbs, fat, fiber, sugar, sodium,
                start_date, end_date, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            tuple(row.values()),
        )
    return _row_to_goal(row)


def list_goals(user_id: str) -> List[Goal]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM goals WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
            (user_id,),
        ).fetchall()
        return [_row_to_goal(dict(r)) for r in rows]


def get_active_goal(user_id: str, start: date, end: date) -> Optional[Goal]:
    """Most recent goal whose validity window overlaps [start, end]."""
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            """
            SELECT * FROM goals
            WHERE user_id = ?
              AND start_date <= ?
              AND (end_date IS NULL OR end_date >= ?)
            ORDER BY created_at DESC, rowid DESC
            LIMIT 1
            """,
            (user_id, end.isoformat(), start.isoformat()),
        ).fetchone()
        return _row_to_goal(dict(row)) if row else None
