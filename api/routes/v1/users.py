"""
api/routes/v1/users.py -- Registration lookups and user administration.

Routes:
  GET  /api/v1/users/exists           -- is a username or email taken? (public)
  GET  /api/v1/users                  -- paginated normal users (admin only)
  GET  /api/v1/users/admins           -- admin users with namespace path (admin only)
  POST /api/v1/users/{id}/activate    -- set verified_at (admin only)

Pagination: `page` is 0-based and the store computes offset = page * per.
`per` is capped at MAX_PAGE_SIZE here; `page` is not bounded.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from accounts.dependencies import require_admin
from accounts.models import User
from accounts.users import UserStore
from api.models import ExistsResponse, UserResponse
from core.config import get_settings
from core.errors import NotFoundError

router = APIRouter()


@router.get("/users/exists", response_model=ExistsResponse)
def exists(
    request: Request,
    username: str = Query(default="", max_length=40),
    email: str = Query(default="", max_length=255),
) -> ExistsResponse:
    """Report whether a live user already holds this username or email."""
    if not username and not email:
        raise HTTPException(
            status_code=400,
            detail={"code": "missing_parameter", "message": "Pass username, email, or both."},
        )
    users: UserStore = request.app.state.users
    return ExistsResponse(exists=users.exists_email_or_username(username, email))


@router.get("/users", response_model=list[UserResponse])
def list_users(
    request: Request,
    page: int = Query(default=0, ge=0),
    per: Optional[int] = Query(default=None, ge=1),
    current_user: User = Depends(require_admin),
) -> list[UserResponse]:
    """List normal users, one page at a time. Admin only."""
    settings = get_settings()
    per = min(per or settings.default_page_size, settings.max_page_size)
    users: UserStore = request.app.state.users
    return [UserResponse.from_user(u, show_email=True) for u in users.list_all_users(page, per)]


@router.get("/users/admins", response_model=list[UserResponse])
def list_admins(request: Request, current_user: User = Depends(require_admin)) -> list[UserResponse]:
    """List admin users with their namespace paths. Admin only."""
    users: UserStore = request.app.state.users
    return [UserResponse.from_view(view) for view in users.list_admin_users()]


@router.post("/users/{user_id}/activate", response_model=UserResponse)
def activate(request: Request, user_id: int, current_user: User = Depends(require_admin)) -> UserResponse:
    """Mark a user verified. Activating an already verified user is a no-op. Admin only."""
    users: UserStore = request.app.state.users
    target = users.get_user(user_id)
    if target is None:
        raise NotFoundError("user")
    users.activate_user(user_id)
    return UserResponse.from_user(users.get_user(user_id), show_email=True)
