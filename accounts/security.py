"""
accounts/security.py -- Password hashing, session tokens and the auth cookie.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). passlib's wrap-bug
       detection builds a password longer than 72 bytes, which bcrypt 4.x
       rejects. Hash verification returns False on malformed hashes instead
       of raising, so a corrupt row reads as a wrong password.

  Session tokens: uuid4 hex strings. They are opaque bearer credentials; the
       server-side expired_at column, not anything encoded in the token,
       decides validity.

  Cookie: one explicit lifetime policy. max_age equals the session lifetime
       so browser and database agree on when the login ends.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import uuid

import bcrypt

from core.config import Settings, get_settings

logger = logging.getLogger("nsaccounts.auth")


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt 4.x rejects passwords longer than 72 bytes. The API caps
    password length at 72 characters (Pydantic field).
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def generate_session_token() -> str:
    return uuid.uuid4().hex


def set_auth_cookie(response, token: str, settings: Settings | None = None) -> None:
    """Write the session token cookie on a Starlette response.

    path="/" so every route sees it. secure and httponly follow settings;
    both default to off to match existing clients that read the cookie.
    """
    settings = settings or get_settings()
    response.set_cookie(
        settings.cookie_name,
        value=token,
        max_age=settings.session_expire_seconds,
        path="/",
        secure=settings.secure_cookies,
        httponly=settings.cookie_httponly,
        samesite="lax",
    )


def clear_auth_cookie(response, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.delete_cookie(settings.cookie_name, path="/")
