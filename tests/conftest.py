"""
tests/conftest.py -- Shared test fixtures for nsaccounts.

This module provides:
  - db / stores: a fresh in-memory Database per test with the three stores
  - make_user(): registers a user (optionally verified / admin) through
    RegistrationService so every user has a namespace, like real accounts
  - api_client: TestClient over the real app with a patched lifespan

Design: API tests use named shared-memory SQLite URIs (not plain :memory:)
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format shares one in-memory instance across all
connections in the same process.

LOGIN_RATE_LIMIT is raised before any app import so the many logins in the
API tests do not trip the limiter.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from accounts.db import Database
from accounts.login import LoginService
from accounts.models import User
from accounts.namespaces import NamespaceStore
from accounts.registration import Registration, RegistrationService
from accounts.schema import TableNames
from accounts.sessions import SessionStore
from accounts.users import UserStore
from api.main import app, install_stores
from core.config import get_settings


@dataclass
class Stores:
    db: Database
    users: UserStore
    sessions: SessionStore
    namespaces: NamespaceStore
    login: LoginService
    registration: RegistrationService


def _build_stores(db: Database) -> Stores:
    namespaces = NamespaceStore(db)
    users = UserStore(db, namespaces)
    sessions = SessionStore(db)
    return Stores(
        db=db,
        users=users,
        sessions=sessions,
        namespaces=namespaces,
        login=LoginService(db, users, sessions, namespaces, get_settings()),
        registration=RegistrationService(db, users, namespaces),
    )


def make_user(
    stores: Stores,
    username: str,
    password: str = "correct-horse",
    email: str | None = None,
    verified: bool = True,
    is_admin: bool = False,
) -> User:
    """Register a user through the real registration flow and reload it."""
    user = stores.registration.register(
        Registration(
            email=email or f"{username}@example.com",
            username=username,
            password=password,
            name=username.title(),
            is_admin=is_admin,
        ),
        client_ip="10.0.0.1",
    )
    if verified:
        stores.users.activate_user(user.id)
    return stores.users.get_user(user.id)


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = Database("sqlite:///:memory:", TableNames())
    yield database
    database.close()


@pytest.fixture
def stores(db: Database) -> Stores:
    return _build_stores(db)


# ---------------------------------------------------------------------------
# API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


def _patch_lifespan(db: Database):
    @asynccontextmanager
    async def test_lifespan(app):
        install_stores(app, db, get_settings())
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, Stores], None, None]:
    """Yield (client, stores) for API integration tests.

    The database is named after the test module so modules never share rows.
    An admin "root" and a regular verified user "alice" exist up front, both
    with password "correct-horse".
    """
    name = request.module.__name__.rsplit(".", 1)[-1]
    db = Database(f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true", TableNames())
    stores = _build_stores(db)
    make_user(stores, "root", is_admin=True)
    make_user(stores, "alice")

    app.router.lifespan_context = _patch_lifespan(db)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, stores

    db.close()


def login_token(client: TestClient, identifier: str, password: str = "correct-horse") -> str:
    resp = client.post("/api/v1/auth/login", json={"email": identifier, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]
