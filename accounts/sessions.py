"""
accounts/sessions.py -- Persistence for login sessions.

Sessions are insert-only. There is no revocation or rotation: a row stops
authenticating once expired_at is in the past. Resolving a token to its user is
a join and lives in UserStore.get_user_by_token().
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.engine import Connection

from accounts.db import Database, sql_errors
from accounts.models import Session
from accounts.security import generate_session_token


def build_session(user_id: int, client_ip: str, expire_seconds: int) -> Session:
    """Return a new, unsaved Session with a fresh random token."""
    now = int(datetime.now(timezone.utc).timestamp())
    return Session(
        owner_id=user_id,
        token=generate_session_token(),
        client_ip=client_ip,
        created_at=now,
        expired_at=now + expire_seconds,
    )


class SessionStore:
    def __init__(self, db: Database) -> None:
        self.db = db
        self._sessions = db.schema.sessions

    def add_session(self, session: Session, conn: Connection | None = None) -> int:
        with sql_errors("add session"), self.db.connection(conn) as c:
            result = c.execute(
                self._sessions.insert().values(
                    owner_id=session.owner_id,
                    token=session.token,
                    client_ip=session.client_ip,
                    created_at=session.created_at,
                    expired_at=session.expired_at,
                )
            )
            session_id = result.inserted_primary_key[0]
        session.id = session_id
        return session_id

    def get_session(self, token: str) -> Session | None:
        """Look up a session row by token, expired or not."""
        with sql_errors("get session"), self.db.connection() as c:
            row = c.execute(select(self._sessions).where(self._sessions.c.token == token)).first()
        return _row_to_session(row) if row is not None else None

    def list_sessions(self, owner_id: int) -> list[Session]:
        """Return every session row owned by `owner_id`, oldest first."""
        s = self._sessions
        with sql_errors("list sessions"), self.db.connection() as c:
            rows = c.execute(select(s).where(s.c.owner_id == owner_id).order_by(s.c.id)).fetchall()
        return [_row_to_session(r) for r in rows]


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        owner_id=row.owner_id,
        token=row.token,
        client_ip=row.client_ip,
        created_at=row.created_at,
        expired_at=row.expired_at,
    )
