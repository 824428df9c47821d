"""
accounts/db.py -- Engine, schema creation and transaction scoping.

Database owns one SQLAlchemy engine and one Schema. Stores hold a reference to
it and never create engines themselves.

Transactions:
  Every store method takes an optional `conn`. Passing the connection yielded
  by Database.transaction() makes the call part of that transaction; leaving
  it out runs the statement in its own short engine.begin() block. This is how
  login applies the last-login update and the session insert all-or-nothing.

Security:
  All queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from accounts.schema import Schema, TableNames, build_schema
from core.errors import SQLError

logger = logging.getLogger("nsaccounts.store")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during login writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


@contextmanager
def sql_errors(action: str) -> Iterator[None]:
    """Translate any SQLAlchemy failure inside the block into SQLError.

    The original exception is chained as __cause__. AppErrors raised inside
    the block pass through untouched.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        raise SQLError(action) from exc


class Database:
    """Engine plus schema for one accounts database.

    Usage:
        db = Database("sqlite:///accounts.db", TableNames())
        with db.transaction() as conn:
            users.update_login(user_id, ip, conn=conn)
            sessions.add_session(sess, conn=conn)
        db.close()
    """

    def __init__(self, db_url: str, tables: TableNames | None = None) -> None:
        self.tables = tables or TableNames()
        self.schema: Schema = build_schema(self.tables)
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        with sql_errors("create schema"):
            self.schema.metadata.create_all(self.engine)
        logger.debug("Database ready (tables=%s)", self.tables)

    @contextmanager
    def connection(self, conn: Connection | None = None) -> Iterator[Connection]:
        """Yield `conn` when given, otherwise a fresh connection in its own transaction."""
        if conn is not None:
            yield conn
            return
        with self.engine.begin() as new_conn:
            yield new_conn

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Run the block in one transaction: commit on success, roll back on any exception."""
        with sql_errors("transaction"), self.engine.begin() as conn:
            yield conn

    def ping(self) -> bool:
        """Return True if the database answers SELECT 1."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
