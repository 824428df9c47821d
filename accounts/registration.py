"""
accounts/registration.py -- Creating a user together with its namespace.

A new account is three writes in one transaction: the user row, a user-type
namespace whose path is the username, and the user's namespace_id pointing at
it. New users are unverified; they cannot log in until activated.

A user namespace left behind by a soft-deleted user is released: registering
the same username takes that namespace over instead of creating a new one.

The existence checks run before the transaction, so two concurrent
registrations can both pass them. The unique indexes decide the winner and
the loser's IntegrityError is reported as the same "exists" error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from accounts.db import Database
from accounts.models import Namespace, NamespaceType, User
from accounts.namespaces import NamespaceStore
from accounts.security import hash_password
from accounts.users import UserStore
from core.errors import InvalidParameterError, SQLError

logger = logging.getLogger("nsaccounts.auth")


@dataclass
class Registration:
    email: str
    username: str
    password: str
    name: str = ""
    public_email: bool = False
    is_admin: bool = False


class RegistrationService:
    def __init__(self, db: Database, users: UserStore, namespaces: NamespaceStore) -> None:
        self.db = db
        self.users = users
        self.namespaces = namespaces

    def register(self, reg: Registration, client_ip: str = "") -> User:
        """Create the user and its namespace. Returns the stored user.

        Raises InvalidParameterError when the username, email or namespace
        path is already taken by a live row.
        """
        if self.users.exists_email_or_username(reg.username, reg.email):
            raise InvalidParameterError("user", "username_or_email", "exists")
        existing = self.namespaces.get_namespace_by_path(reg.username)
        if existing is not None and not self._is_released(existing):
            raise InvalidParameterError("namespace", "path", "exists")

        user = User(
            email=reg.email,
            username=reg.username,
            encrypted_password=hash_password(reg.password),
            name=reg.name or reg.username,
            public_email=reg.public_email,
            is_admin=reg.is_admin,
            register_ip=client_ip or None,
        )
        try:
            with self.db.transaction() as conn:
                user_id = self.users.add_user(user, conn=conn)
                if existing is None:
                    namespace_id = self.namespaces.add_namespace(
                        Namespace(path=reg.username, owner_id=user_id, type=NamespaceType.USER), conn=conn
                    )
                else:
                    if not self.namespaces.reassign_namespace(existing.id, existing.owner_id, user_id, conn=conn):
                        raise InvalidParameterError("namespace", "path", "exists")
                    namespace_id = existing.id
                self.users.update_namespace(user_id, namespace_id, conn=conn)
        except SQLError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                logger.info("Registration of %s lost a uniqueness race", reg.username)
                raise InvalidParameterError("user", "username_or_email", "exists") from exc
            raise
        user.namespace_id = namespace_id

        if existing is not None:
            logger.info("Namespace %s passed from deleted user %d to %d", reg.username, existing.owner_id, user_id)
        logger.info("Registered user %d (%s)", user_id, reg.username)
        return user

    def _is_released(self, namespace: Namespace) -> bool:
        """A user namespace whose owner is gone or soft-deleted can be taken over."""
        return namespace.type is NamespaceType.USER and self.users.get_user(namespace.owner_id) is None
