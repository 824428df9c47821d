"""
accounts/schema.py -- SQLAlchemy Core table definitions.

Tables are built per Database from a TableNames value instead of living in
module-level globals, so the names are configuration (see core/config.py).
"user" and "session" are reserved words in PostgreSQL; SQLAlchemy quotes them
automatically when rendering.

Timestamps are stored as BIGINT Unix seconds. Session expiry is compared
numerically in SQL (expired_at >= :now).
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import BigInteger, Boolean, Column, Index, Integer, MetaData, String, Table, UniqueConstraint

from core.config import Settings


@dataclass(frozen=True)
class TableNames:
    user: str = "user"
    session: str = "session"
    namespace: str = "namespace"

    @classmethod
    def from_settings(cls, settings: Settings) -> "TableNames":
        return cls(
            user=settings.user_table,
            session=settings.session_table,
            namespace=settings.namespace_table,
        )


@dataclass(frozen=True)
class Schema:
    metadata: MetaData
    users: Table
    sessions: Table
    namespaces: Table


def build_schema(names: TableNames) -> Schema:
    """Return a fresh MetaData holding the user, session and namespace tables."""
    metadata = MetaData()

    users = Table(
        names.user,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("email", String(255), nullable=False),
        Column("encrypted_password", String(255), nullable=False),
        Column("username", String(40), nullable=False),
        Column("name", String(255), nullable=False, server_default=""),
        Column("public_email", Boolean, nullable=False, server_default="0"),
        Column("created_at", BigInteger, nullable=False),
        Column("deleted_at", BigInteger),  # NULL = not deleted
        Column("verified_at", BigInteger),  # NULL = not activated
        Column("last_login_at", BigInteger),
        Column("last_login_ip", String(45)),
        Column("register_ip", String(45)),
        Column("is_admin", Boolean, nullable=False, server_default="0"),
        Column("namespace_id", Integer),
    )
    # Unique among non-deleted rows only, so a soft-deleted username can be registered again.
    live = users.c.deleted_at.is_(None)
    Index(f"uq_{names.user}_email", users.c.email, unique=True, sqlite_where=live, postgresql_where=live)
    Index(f"uq_{names.user}_username", users.c.username, unique=True, sqlite_where=live, postgresql_where=live)

    sessions = Table(
        names.session,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("owner_id", Integer, nullable=False, index=True),
        Column("token", String(64), nullable=False, unique=True),
        Column("client_ip", String(45), nullable=False, server_default=""),
        Column("created_at", BigInteger, nullable=False),
        Column("expired_at", BigInteger, nullable=False),
    )

    namespaces = Table(
        names.namespace,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("path", String(255), nullable=False, unique=True),
        Column("owner_id", Integer, nullable=False),
        Column("type", Integer, nullable=False),
        UniqueConstraint("owner_id", "type", name=f"uq_{names.namespace}_owner"),
    )

    return Schema(metadata=metadata, users=users, sessions=sessions, namespaces=namespaces)
