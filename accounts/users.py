"""
accounts/users.py -- SQLAlchemy Core persistence for User rows.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user is
the mapper. Services and routes never touch SQL directly.

Every read goes through normal_user(), so soft-deleted rows never surface from
this store. Writes take an optional `conn` so they can join a transaction
opened with Database.transaction().

Emails are stored and compared lower-cased; usernames are case-sensitive.

Pagination is LIMIT/OFFSET with offset = page * per and no bound on page.
Large offsets degrade linearly; keyset pagination on id is the fix if the user
table ever gets that big.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Table, and_, select
from sqlalchemy.engine import Connection
from sqlalchemy.sql import ColumnElement

from accounts.db import Database, sql_errors
from accounts.models import NamespaceType, User, UserWithNamespace
from accounts.namespaces import NamespaceStore


def _now_unix() -> int:
    return int(datetime.now(timezone.utc).timestamp())


# ---------------------------------------------------------------------------
# Reusable filters
# ---------------------------------------------------------------------------


def normal_user(users: Table) -> ColumnElement[bool]:
    """Rows visible to the application: not soft-deleted."""
    return users.c.deleted_at.is_(None)


def inactive_user(users: Table) -> ColumnElement[bool]:
    """Rows whose account has not been activated yet."""
    return users.c.verified_at.is_(None)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User rows.

    Usage:
        store = UserStore(db)
        user_id = store.add_user(User(email="a@b.c", username="alice", encrypted_password=hash_password("pw")))
        user = store.get_user_by_username("alice")
    """

    def __init__(self, db: Database, namespaces: NamespaceStore | None = None) -> None:
        self.db = db
        self._users = db.schema.users
        self._sessions = db.schema.sessions
        self._namespaces = namespaces or NamespaceStore(db)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_user(self, user: User, conn: Connection | None = None) -> int:
        """Insert a new user and return its id.

        deleted_at, verified_at and the last-login fields always start as NULL.
        A duplicate live email or username raises SQLError (IntegrityError as
        the cause).
        """
        user.email = user.email.lower()
        created_at = user.created_at if user.created_at is not None else _now_unix()
        with sql_errors("add user"), self.db.connection(conn) as c:
            result = c.execute(
                self._users.insert().values(
                    email=user.email,
                    encrypted_password=user.encrypted_password,
                    username=user.username,
                    name=user.name,
                    public_email=user.public_email,
                    created_at=created_at,
                    deleted_at=None,
                    verified_at=None,
                    last_login_at=None,
                    last_login_ip=None,
                    register_ip=user.register_ip,
                    is_admin=user.is_admin,
                    namespace_id=user.namespace_id,
                )
            )
            user_id = result.inserted_primary_key[0]
        user.id = user_id
        user.created_at = created_at
        return user_id

    def activate_user(self, user_id: int, conn: Connection | None = None) -> bool:
        """Stamp verified_at on an inactive user. Returns False if nothing changed."""
        u = self._users
        with sql_errors("activate user"), self.db.connection(conn) as c:
            result = c.execute(
                u.update().where(and_(u.c.id == user_id, inactive_user(u))).values(verified_at=_now_unix())
            )
        return result.rowcount > 0

    def soft_delete_user(self, user_id: int, conn: Connection | None = None) -> bool:
        """Stamp deleted_at on a live user. Returns False if not found or already deleted."""
        u = self._users
        with sql_errors("delete user"), self.db.connection(conn) as c:
            result = c.execute(
                u.update().where(and_(u.c.id == user_id, normal_user(u))).values(deleted_at=_now_unix())
            )
        return result.rowcount > 0

    def update_login(self, user_id: int, client_ip: str, conn: Connection | None = None) -> None:
        self._update(user_id, conn, "update login", last_login_at=_now_unix(), last_login_ip=client_ip)

    def update_namespace(self, user_id: int, namespace_id: int, conn: Connection | None = None) -> None:
        self._update(user_id, conn, "update namespace", namespace_id=namespace_id)

    def _update(self, user_id: int, conn: Connection | None, action: str, **values) -> None:
        with sql_errors(action), self.db.connection(conn) as c:
            c.execute(self._users.update().where(self._users.c.id == user_id).values(**values))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_user(self, user_id: int, conn: Connection | None = None) -> User | None:
        return self._get_user(self._users.c.id == user_id, conn)

    def get_user_by_username(self, username: str, conn: Connection | None = None) -> User | None:
        return self._get_user(self._users.c.username == username, conn)

    def get_user_by_email(self, email: str, conn: Connection | None = None) -> User | None:
        return self._get_user(self._users.c.email == email.lower(), conn)

    def exists_email_or_username(self, username: str, email: str) -> bool:
        """Return True if a live user already has this username or this email.

        Empty arguments are skipped, so callers may check just one of them.
        """
        if username and self.get_user_by_username(username) is not None:
            return True
        if email and self.get_user_by_email(email) is not None:
            return True
        return False

    def list_all_users(self, page: int, per: int) -> list[User]:
        """Return page `page` (0-based) of normal users in insertion (id) order."""
        u = self._users
        stmt = select(u).where(normal_user(u)).order_by(u.c.id).limit(per).offset(page * per)
        with sql_errors("list users"), self.db.connection() as c:
            rows = c.execute(stmt).fetchall()
        return [_row_to_user(r) for r in rows]

    def list_admin_users(self) -> list[UserWithNamespace]:
        """Return normal admin users, each paired with its user namespace.

        Namespaces are fetched with one IN query for the whole batch rather
        than one query per user.
        """
        users = self._list_users(self._users.c.is_admin.is_(True))
        return self._with_namespaces(users)

    def get_user_by_token(self, token: str) -> User | None:
        """Resolve a session token to its owner.

        The token match and the expiry check live in the JOIN condition, so an
        expired session returns None exactly like an unknown token.
        """
        u, s = self._users, self._sessions
        joined = u.join(s, and_(s.c.token == token, s.c.expired_at >= _now_unix(), u.c.id == s.c.owner_id))
        stmt = select(u).select_from(joined).where(normal_user(u)).limit(1)
        with sql_errors("get user by token"), self.db.connection() as c:
            row = c.execute(stmt).first()
        return _row_to_user(row) if row is not None else None

    def _get_user(self, cond: ColumnElement[bool], conn: Connection | None = None) -> User | None:
        users = self._list_users(cond, conn)
        return users[0] if users else None

    def _list_users(self, cond: ColumnElement[bool], conn: Connection | None = None) -> list[User]:
        u = self._users
        stmt = select(u).where(and_(cond, normal_user(u))).order_by(u.c.id)
        with sql_errors("list users"), self.db.connection(conn) as c:
            rows = c.execute(stmt).fetchall()
        return [_row_to_user(r) for r in rows]

    def _with_namespaces(self, users: list[User]) -> list[UserWithNamespace]:
        owner_ids = [user.id for user in users]
        by_owner = {ns.owner_id: ns for ns in self._namespaces.list_namespaces_by_owner(NamespaceType.USER, *owner_ids)}
        return [UserWithNamespace(user=user, namespace=by_owner.get(user.id)) for user in users]


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        username=row.username,
        name=row.name,
        encrypted_password=row.encrypted_password,
        public_email=bool(row.public_email),
        is_admin=bool(row.is_admin),
        namespace_id=row.namespace_id,
        created_at=row.created_at,
        deleted_at=row.deleted_at,
        verified_at=row.verified_at,
        last_login_at=row.last_login_at,
        last_login_ip=row.last_login_ip,
        register_ip=row.register_ip,
    )
