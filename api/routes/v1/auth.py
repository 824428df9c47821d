"""
api/routes/v1/auth.py -- Login, logout, registration and current-user endpoints.

Routes:
  POST /api/v1/auth/login      -- password login; sets the session cookie
  POST /api/v1/auth/logout     -- clears the session cookie
  POST /api/v1/auth/register   -- self-registration (SELF_REGISTRATION_ENABLED)
  GET  /api/v1/auth/me         -- current user (requires a session)

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  Login and register responses carry Cache-Control: no-store.
  Logout does not revoke the session row; the token stays valid until its
  stored expiry. Only the cookie is cleared.

Domain errors (NotFoundError, AccessDeniedError, InvalidParameterError,
SQLError) propagate to the AppError handler in api/main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from accounts.dependencies import get_current_user
from accounts.login import LoginService
from accounts.models import User
from accounts.registration import Registration, RegistrationService
from accounts.security import clear_auth_cookie, set_auth_cookie
from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from core.config import get_settings

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else ""


@limiter.limit(lambda: get_settings().login_rate_limit)
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email-or-username and password; set the session cookie."""
    service: LoginService = request.app.state.login_service
    result = service.login(body.email, body.password, _client_ip(request))

    resp = JSONResponse(status_code=200, content=LoginResponse.from_result(result).model_dump())
    set_auth_cookie(resp, result.token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout")
def logout() -> JSONResponse:
    """Clear the session cookie."""
    resp = JSONResponse(content={"message": "Logged out."})
    clear_auth_cookie(resp)
    return resp


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an unverified account and its namespace."""
    if not get_settings().self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )
    service: RegistrationService = request.app.state.registration_service
    user = service.register(
        Registration(
            email=body.email,
            username=body.username,
            password=body.password,
            name=body.name,
            public_email=body.public_email,
        ),
        client_ip=_client_ip(request),
    )
    resp = JSONResponse(
        status_code=201,
        content=UserResponse.from_user(user, show_email=True, namespace_path=body.username).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=UserResponse)
def me(request: Request, current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated user, including their namespace path."""
    namespace_path = None
    if current_user.namespace_id is not None:
        namespace = request.app.state.namespaces.get_namespace(current_user.namespace_id)
        namespace_path = namespace.path if namespace is not None else None
    return UserResponse.from_user(current_user, show_email=True, namespace_path=namespace_path)
