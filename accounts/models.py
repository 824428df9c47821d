"""
accounts/models.py -- Domain dataclasses for account entities.

Pattern: Data class (pure data container). Stores and services do the work;
these classes only own the shape of a row. Timestamps are Unix seconds (UTC).

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class NamespaceType(IntEnum):
    USER = 1
    ORGANIZATION = 2


@dataclass
class User:
    """An account identity.

    email and username are unique among non-deleted rows. deleted_at marks a
    soft delete; soft-deleted rows never come back from a store read.

    verified_at is None until the account is activated. Login refuses
    unverified accounts with AccessDeniedError before looking at the password.
    """

    email: str
    username: str
    encrypted_password: str
    name: str = ""
    public_email: bool = False
    is_admin: bool = False
    namespace_id: int | None = None
    id: int | None = None
    created_at: int | None = None
    deleted_at: int | None = None
    verified_at: int | None = None
    last_login_at: int | None = None
    last_login_ip: str | None = None
    register_ip: str | None = None

    @property
    def verified(self) -> bool:
        return self.verified_at is not None


@dataclass
class Session:
    """An opaque bearer token owned by one user.

    Valid while now < expired_at. Rows are never updated or deleted; an
    expired row simply stops matching the token lookup.
    """

    owner_id: int
    token: str
    client_ip: str
    created_at: int
    expired_at: int
    id: int | None = None


@dataclass
class Namespace:
    path: str
    owner_id: int
    type: NamespaceType = NamespaceType.USER
    id: int | None = None


@dataclass(frozen=True)
class UserWithNamespace:
    """A user joined with its namespace, built by bulk enrichment.

    namespace is None when the user has no namespace of the requested type.
    """

    user: User
    namespace: Namespace | None = None

    @property
    def namespace_path(self) -> str | None:
        return self.namespace.path if self.namespace is not None else None


@dataclass(frozen=True)
class LoginResult:
    token: str
    namespace_path: str
    name: str
    email: str
    public_email: bool
