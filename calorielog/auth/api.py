# -*- coding: utf-8 -*-
"""Auth — API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..config import settings
from .models import AuthResponse, LoginRequest, RegisterRequest, Role, RoleUpdateRequest, UserListResponse, UserPublic
from .security import (
    TOKEN_COOKIE_NAME,
    create_access_token,
    get_current_user,
    hash_password,
    require_role,
    validate_password,
    verify_password,
)
from .storage import create_user, get_user_by_email, list_users, normalize_email, set_user_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _user_public(row: dict) -> UserPublic:
    return UserPublic(
        id=row["id"],
        email=row["email"],
        name=row.get("name") or "",
        provider=row.get("provider") or "EMAIL",
        role=row.get("role") or Role.USER.value,
        created_at=row["created_at"],
    )


def _set_auth_cookie(resp: Response, token: str) -> None:
    max_age = int(settings.token_ttl_days) * 24 * 60 * 60
    resp.set_cookie(
        TOKEN_COOKIE_NAME,
        token,
        httponly=True,
        secure=bool(settings.cookie_secure),
        samesite="lax",
        max_age=max_age,
        path="/",
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
def register(request: RegisterRequest, response: Response):
    if get_user_by_email(request.email):
        logger.warning("registration attempted with existing email")
        raise HTTPException(status_code=409, detail="Email already exists")

    problems = validate_password(request.password)
    if problems:
        raise HTTPException(status_code=400, detail=problems)

    user = create_user(
        email=request.email,
        name=request.name,
        password_hash=hash_password(request.password),
        role=Role.ADMIN.value if normalize_email(request.email) in settings.admin_emails else Role.USER.value,
        profile=request.model_dump(
            mode="json",
            include={"height_cm", "weight_kg", "gender", "activity_level", "birth_date"},
        ),
    )
    logger.info("user registered: %s", user["id"])

    token = create_access_token(user_id=user["id"], email=user["email"])
    _set_auth_cookie(response, token)
    return AuthResponse(user=_user_public(user), token=token)


@router.post("/login", response_model=AuthResponse, summary="Login")
def login(request: LoginRequest, response: Response):
    user = get_user_by_email(request.email)
    if not user or not verify_password(request.password, user.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(user_id=user["id"], email=user["email"])
    _set_auth_cookie(response, token)
    return AuthResponse(user=_user_public(user), token=token)


@router.post("/logout", summary="Logout")
def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE_NAME, path="/")
    return {"status": "ok"}


@router.get("/me", response_model=UserPublic, summary="Get current user")
def me(user: dict = Depends(get_current_user)):
    return _user_public(user)


@router.get("/users", response_model=UserListResponse, summary="List users (moderators and admins)")
def list_users_api(user: dict = Depends(require_role(Role.MODERATOR))):
    items = [_user_public(row) for row in list_users()]
    return UserListResponse(count=len(items), items=items)


@router.patch("/users/{user_id}/role", response_model=UserPublic, summary="Change a user's role (admins)")
def set_user_role_api(
    user_id: str,
    request: RoleUpdateRequest,
    admin: dict = Depends(require_role(Role.ADMIN)),
):
    updated = set_user_role(user_id, request.role.value)
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("user %s role set to %s by %s", user_id, request.role.value, admin["id"])
    return _user_public(updated)
