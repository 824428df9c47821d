"""
API request and response models for nsaccounts REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in accounts/models.py, which own
the internal domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from accounts.models import LoginResult, User, UserWithNamespace

USERNAME_PATTERN = r"^[a-zA-Z0-9][a-zA-Z0-9_-]{2,39}$"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    `email` accepts either an email address or a username; an "@" decides
    which lookup is used. The password is taken verbatim, surrounding
    whitespace included.
    """

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)

    @field_validator("email", mode="before")
    @classmethod
    def strip_identifier(cls, value):
        return value.strip() if isinstance(value, str) else value


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    Text fields other than the password are stripped. Email case is
    normalised by UserStore.
    """

    email: str = Field(min_length=3, max_length=255)
    username: str = Field(pattern=USERNAME_PATTERN)
    password: str = Field(min_length=8, max_length=72)
    name: str = Field(default="", max_length=255)
    public_email: bool = False

    @field_validator("email", "username", "name", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def email_has_at(cls, value: str) -> str:
        """Require exactly one "@" with text on both sides."""
        local, sep, domain = value.partition("@")
        if not sep or not local or not domain or "@" in domain:
            raise ValueError("email must look like name@domain")
        return value


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    namespace_path: str
    name: str
    email: str
    public_email: bool

    @classmethod
    def from_result(cls, result: LoginResult) -> "LoginResponse":
        return cls(
            token=result.token,
            namespace_path=result.namespace_path,
            name=result.name,
            email=result.email,
            public_email=result.public_email,
        )


class UserResponse(BaseModel):
    """Public view of a user. Never includes the password hash.

    email is shown only when the user opted into public_email or the caller
    is looking at their own account (routes decide via `show_email`).
    """

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    name: str
    email: Optional[str]
    public_email: bool
    is_admin: bool
    verified: bool
    created_at: int
    last_login_at: Optional[int] = None
    namespace_path: Optional[str] = None

    @classmethod
    def from_user(cls, user: User, show_email: bool = False, namespace_path: Optional[str] = None) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            name=user.name,
            email=user.email if (show_email or user.public_email) else None,
            public_email=user.public_email,
            is_admin=user.is_admin,
            verified=user.verified,
            created_at=user.created_at or 0,
            last_login_at=user.last_login_at,
            namespace_path=namespace_path,
        )

    @classmethod
    def from_view(cls, view: UserWithNamespace) -> "UserResponse":
        return cls.from_user(view.user, show_email=True, namespace_path=view.namespace_path)


class ExistsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    exists: bool


class ErrorDetail(BaseModel):
    """Structured error detail nested inside ErrorResponse."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all exception handlers."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response body for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
