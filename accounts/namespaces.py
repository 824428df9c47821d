"""
accounts/namespaces.py -- Persistence for Namespace rows.

One namespace per (owner_id, type), enforced by a UNIQUE constraint. Paths are
globally unique. A user namespace whose owner was soft-deleted can be handed to
a new owner with reassign_namespace().
"""

from __future__ import annotations

from sqlalchemy import and_, select
from sqlalchemy.engine import Connection

from accounts.db import Database, sql_errors
from accounts.models import Namespace, NamespaceType


class NamespaceStore:
    def __init__(self, db: Database) -> None:
        self.db = db
        self._namespaces = db.schema.namespaces

    def add_namespace(self, namespace: Namespace, conn: Connection | None = None) -> int:
        """Insert a namespace and return its id. A taken path or owner slot raises SQLError."""
        with sql_errors("add namespace"), self.db.connection(conn) as c:
            result = c.execute(
                self._namespaces.insert().values(
                    path=namespace.path,
                    owner_id=namespace.owner_id,
                    type=int(namespace.type),
                )
            )
            namespace_id = result.inserted_primary_key[0]
        namespace.id = namespace_id
        return namespace_id

    def reassign_namespace(
        self, namespace_id: int, old_owner_id: int, new_owner_id: int, conn: Connection | None = None
    ) -> bool:
        """Move a namespace to a new owner if `old_owner_id` still holds it."""
        ns = self._namespaces
        with sql_errors("reassign namespace"), self.db.connection(conn) as c:
            result = c.execute(
                ns.update()
                .where(and_(ns.c.id == namespace_id, ns.c.owner_id == old_owner_id))
                .values(owner_id=new_owner_id)
            )
        return result.rowcount > 0

    def get_namespace(self, namespace_id: int, conn: Connection | None = None) -> Namespace | None:
        return self._get(self._namespaces.c.id == namespace_id, conn)

    def get_namespace_by_path(self, path: str, conn: Connection | None = None) -> Namespace | None:
        return self._get(self._namespaces.c.path == path, conn)

    def list_namespaces_by_owner(self, owner_type: NamespaceType, *owner_ids: int) -> list[Namespace]:
        """Return the namespaces of `owner_type` owned by any of `owner_ids`, in one query."""
        if not owner_ids:
            return []
        ns = self._namespaces
        stmt = (
            select(ns)
            .where(and_(ns.c.type == int(owner_type), ns.c.owner_id.in_(list(owner_ids))))
            .order_by(ns.c.id)
        )
        with sql_errors("list namespaces"), self.db.connection() as c:
            rows = c.execute(stmt).fetchall()
        return [_row_to_namespace(r) for r in rows]

    def _get(self, cond, conn: Connection | None) -> Namespace | None:
        with sql_errors("get namespace"), self.db.connection(conn) as c:
            row = c.execute(select(self._namespaces).where(cond)).first()
        return _row_to_namespace(row) if row is not None else None


def _row_to_namespace(row) -> Namespace:
    return Namespace(id=row.id, path=row.path, owner_id=row.owner_id, type=NamespaceType(row.type))
