# -*- coding: utf-8 -*-
"""Auth — DB storage helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_email(email: str) -> str:
    return email.lower().strip()


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE email = ?", (normalize_email(email),)).fetchone()
        return dict(row) if row else None


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None


def create_user(
    *,
    email: str,
    name: str,
    password_hash: str,
    role: str = "USER",
    profile: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Create the user and, when any profile field is given, its profile row."""
    user_id = str(uuid4())
    now = _utc_now()
    email_norm = normalize_email(email)
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO users (id, email, name, password_hash, provider, role, created_at)
            VALUES (?, ?, ?, ?, 'EMAIL', ?, ?)
            """,
            (user_id, email_norm, name, password_hash, role, now),
        )
        if profile and any(v is not None for v in profile.values()):
            conn.execute(
                """
                INSERT INTO profiles (user_id, height_cm, weight_kg, gender, activity_level, birth_date)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    profile.get("height_cm"),
                    profile.get("weight_kg"),
                    profile.get("gender"),
                    profile.get("activity_level"),
                    profile.get("birth_date"),
                ),
            )
    return {
        "id": user_id,
        "email": email_norm,
        "name": name,
        "password_hash": password_hash,
        "provider": "EMAIL",
        "role": role,
        "created_at": now,
    }


def list_users() -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute("SELECT * FROM users ORDER BY created_at ASC, rowid ASC").fetchall()
        return [dict(r) for r in rows]


def set_user_role(user_id: str, role: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute("UPDATE users SET role = ? WHERE id = ?", (role, user_id))
        if cur.rowcount == 0:
            return None
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None
