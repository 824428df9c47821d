"""
core/errors.py -- Typed error taxonomy shared by the stores, services and API.

Every failure a caller may need to tell apart has its own class:

  NotFoundError          -- no matching (normal) row
  AccessDeniedError      -- the row exists but may not be used (e.g. unverified)
  InvalidParameterError  -- a supplied value is wrong (e.g. password mismatch)
  SQLError               -- any database failure; the SQLAlchemy exception is
                            chained as __cause__ via `raise ... from exc`

All of them carry an HTTP status and a machine-readable code so api/main.py
can render them with a single exception handler. Nothing here retries or logs;
errors bubble to the caller unchanged.

Layer rule: core/ is the kernel. No imports from api/ or accounts/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_detail(self) -> dict:
        """Return the body of the {"error": ...} envelope."""
        return {"code": self.code, "message": self.message, "detail": self.detail}


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"

    def __init__(self, model: str) -> None:
        super().__init__(f"{model} not found.")
        self.model = model


class AccessDeniedError(AppError):
    status_code = 403
    code = "access_denied"

    def __init__(self, model: str, reason: str) -> None:
        super().__init__(f"Access to {model} denied.", detail=reason)
        self.model = model
        self.reason = reason


class InvalidParameterError(AppError):
    status_code = 400
    code = "invalid_parameter"

    def __init__(self, model: str, field: str, reason: str) -> None:
        super().__init__(f"Invalid {model}.{field}.", detail=reason)
        self.model = model
        self.field = field
        self.reason = reason


class SQLError(AppError):
    """A database operation failed.

    The message names the store action only. The underlying driver error is
    available as __cause__ for logging and is never put in the response body.
    """

    status_code = 500
    code = "sql_error"

    def __init__(self, action: str) -> None:
        super().__init__(f"Database error during {action}.")
        self.action = action
