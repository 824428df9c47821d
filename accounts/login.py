"""
accounts/login.py -- Password login and session issuance.

Flow (single pass):
  1. identifier containing "@" is an email, anything else a username
  2. no live user                 -> NotFoundError("user")
  3. verified_at is NULL          -> AccessDeniedError("user", "not_activated")
  4. bcrypt mismatch              -> InvalidParameterError("user", "password", "not_equal")
  5. one transaction: stamp last login, insert a new session, load the
     user's namespace and build the LoginResult

Any failure in step 5 rolls back both the last-login update and the session
insert. Setting the cookie is the HTTP layer's job (see accounts.security).

The three error kinds are distinct on purpose so clients can show "no such
account" versus "wrong password". That reveals whether an account exists.
"""

from __future__ import annotations

import logging

from accounts.db import Database
from accounts.models import LoginResult, User
from accounts.namespaces import NamespaceStore
from accounts.security import verify_password
from accounts.sessions import SessionStore, build_session
from accounts.users import UserStore
from core.config import Settings, get_settings
from core.errors import AccessDeniedError, InvalidParameterError, NotFoundError

logger = logging.getLogger("nsaccounts.auth")


class LoginService:
    def __init__(
        self,
        db: Database,
        users: UserStore,
        sessions: SessionStore,
        namespaces: NamespaceStore,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.users = users
        self.sessions = sessions
        self.namespaces = namespaces
        self.settings = settings or get_settings()

    def validate(self, identifier: str, password: str) -> User:
        """Return the user matching the credentials or raise the matching AppError."""
        if "@" in identifier:
            user = self.users.get_user_by_email(identifier)
        else:
            user = self.users.get_user_by_username(identifier)

        if user is None:
            logger.info("Login rejected: unknown account")
            raise NotFoundError("user")
        if not user.verified:
            logger.info("Login rejected: user %d not activated", user.id)
            raise AccessDeniedError("user", "not_activated")
        if not verify_password(password, user.encrypted_password):
            logger.info("Login rejected: wrong password for user %d", user.id)
            raise InvalidParameterError("user", "password", "not_equal")
        return user

    def login(self, identifier: str, password: str, client_ip: str) -> LoginResult:
        """Validate credentials, then record the login and issue a session atomically."""
        user = self.validate(identifier, password)

        with self.db.transaction() as conn:
            self.users.update_login(user.id, client_ip, conn=conn)

            session = build_session(user.id, client_ip, self.settings.session_expire_seconds)
            self.sessions.add_session(session, conn=conn)

            namespace = None
            if user.namespace_id is not None:
                namespace = self.namespaces.get_namespace(user.namespace_id, conn=conn)
            if namespace is None:
                raise NotFoundError("namespace")

            result = LoginResult(
                token=session.token,
                namespace_path=namespace.path,
                name=user.name,
                email=user.email,
                public_email=user.public_email,
            )

        logger.info("User %d logged in from %s", user.id, client_ip)
        return result
