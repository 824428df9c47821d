"""
accounts/dependencies.py -- FastAPI Depends() helpers for session authentication.

Two token sources are checked in priority order:
  1. the session cookie (name from settings, "auth-user-token" by default)
  2. Authorization: Bearer <token>

Both resolve through UserStore.get_user_by_token(), which only matches
unexpired sessions of live users.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() raises HTTP 401; require_admin() additionally raises 403.

accounts/dependencies.py may import from fastapi because it is part of the
FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from accounts.models import User
from accounts.users import UserStore
from core.config import get_settings


def request_token(request: Request) -> str | None:
    """Return the session token carried by the request, if any."""
    token = request.cookies.get(get_settings().cookie_name)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token or None


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated User, or None. Never raises HTTPException."""
    token = request_token(request)
    if token is None:
        return None
    users: UserStore = request.app.state.users
    return users.get_user_by_token(token)


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request carries no valid session."""
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user


def require_admin(request: Request) -> User:
    """Require an admin user. Raises HTTP 401 if unauthenticated, HTTP 403 if not admin."""
    user = get_current_user(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Admin access required."},
        )
    return user
