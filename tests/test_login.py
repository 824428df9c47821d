"""Unit tests for accounts/login.py -- credential validation and session issuance.

Covers:
- email vs username resolution by "@"
- NotFound / AccessDenied / InvalidParameter ordering
- a successful login stamps last-login fields and stores a session owned by the user
- failures inside the login transaction roll back both writes
- two concurrent logins produce two independently valid sessions
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from accounts.db import Database
from accounts.login import LoginService
from accounts.models import User
from accounts.schema import TableNames
from accounts.security import hash_password
from conftest import Stores, _build_stores, make_user
from core.errors import AccessDeniedError, InvalidParameterError, NotFoundError


class TestValidate:
    def test_login_by_username(self, stores: Stores) -> None:
        user = make_user(stores, "alice")
        assert stores.login.validate("alice", "correct-horse").id == user.id

    def test_login_by_email(self, stores: Stores) -> None:
        user = make_user(stores, "alice")
        assert stores.login.validate("alice@example.com", "correct-horse").id == user.id

    def test_unknown_user(self, stores: Stores) -> None:
        with pytest.raises(NotFoundError):
            stores.login.validate("ghost", "whatever")

    def test_email_identifier_never_matches_username(self, stores: Stores) -> None:
        """An identifier with "@" is only ever looked up as an email."""
        make_user(stores, "alice", email="a.liddell@example.com")
        with pytest.raises(NotFoundError):
            stores.login.validate("alice@example.com", "correct-horse")

    def test_unverified_is_denied_even_with_right_password(self, stores: Stores) -> None:
        make_user(stores, "alice", verified=False)
        with pytest.raises(AccessDeniedError) as excinfo:
            stores.login.validate("alice", "correct-horse")
        assert excinfo.value.reason == "not_activated"

    def test_unverified_is_denied_with_wrong_password(self, stores: Stores) -> None:
        make_user(stores, "alice", verified=False)
        with pytest.raises(AccessDeniedError):
            stores.login.validate("alice", "wrong")

    def test_wrong_password(self, stores: Stores) -> None:
        make_user(stores, "alice")
        with pytest.raises(InvalidParameterError) as excinfo:
            stores.login.validate("alice", "wrong")
        assert excinfo.value.field == "password"
        assert excinfo.value.reason == "not_equal"

    def test_deleted_user_is_not_found(self, stores: Stores) -> None:
        user = make_user(stores, "alice")
        stores.users.soft_delete_user(user.id)
        with pytest.raises(NotFoundError):
            stores.login.validate("alice", "correct-horse")


class TestLogin:
    def test_success_returns_payload_and_session(self, stores: Stores) -> None:
        user = make_user(stores, "alice")
        result = stores.login.login("alice", "correct-horse", "198.51.100.4")

        assert result.namespace_path == "alice"
        assert result.name == "Alice"
        assert result.email == "alice@example.com"
        assert result.public_email is False

        session = stores.sessions.get_session(result.token)
        assert session.owner_id == user.id
        assert session.client_ip == "198.51.100.4"
        assert session.expired_at - session.created_at == stores.login.settings.session_expire_seconds
        assert stores.users.get_user_by_token(result.token).id == user.id

    def test_success_updates_last_login(self, stores: Stores) -> None:
        user = make_user(stores, "alice")
        stores.login.login("alice@example.com", "correct-horse", "198.51.100.4")
        stored = stores.users.get_user(user.id)
        assert stored.last_login_ip == "198.51.100.4"
        assert stored.last_login_at is not None

    def test_wrong_password_inserts_no_session(self, stores: Stores) -> None:
        user = make_user(stores, "alice")
        with pytest.raises(InvalidParameterError):
            stores.login.login("alice", "wrong", "198.51.100.4")
        assert stores.sessions.list_sessions(user.id) == []
        assert stores.users.get_user(user.id).last_login_at is None

    def test_failure_inside_transaction_rolls_back(self, stores: Stores) -> None:
        """A verified user without a namespace fails after the writes; both are undone."""
        user = User(
            email="bare@example.com",
            username="bare",
            encrypted_password=hash_password("correct-horse"),
        )
        user_id = stores.users.add_user(user)
        stores.users.activate_user(user_id)

        with pytest.raises(NotFoundError) as excinfo:
            stores.login.login("bare", "correct-horse", "198.51.100.4")
        assert excinfo.value.model == "namespace"

        assert stores.sessions.list_sessions(user_id) == []
        stored = stores.users.get_user(user_id)
        assert stored.last_login_at is None
        assert stored.last_login_ip is None

    def test_each_login_issues_a_new_token(self, stores: Stores) -> None:
        make_user(stores, "alice")
        first = stores.login.login("alice", "correct-horse", "127.0.0.1")
        second = stores.login.login("alice", "correct-horse", "127.0.0.1")
        assert first.token != second.token
        assert stores.users.get_user_by_token(first.token) is not None
        assert stores.users.get_user_by_token(second.token) is not None

    def test_custom_session_lifetime(self, stores: Stores) -> None:
        make_user(stores, "alice")
        settings = stores.login.settings.model_copy(update={"session_expire_seconds": 120})
        service = LoginService(stores.db, stores.users, stores.sessions, stores.namespaces, settings)
        result = service.login("alice", "correct-horse", "127.0.0.1")
        session = stores.sessions.get_session(result.token)
        assert session.expired_at - session.created_at == 120


class TestConcurrentLogin:
    def test_two_concurrent_logins_get_distinct_valid_tokens(self, tmp_path) -> None:
        """File-backed DB so each worker thread gets its own connection."""
        db = Database(f"sqlite:///{tmp_path / 'concurrent.db'}", TableNames())
        try:
            stores = _build_stores(db)
            user = make_user(stores, "alice")

            with ThreadPoolExecutor(max_workers=2) as pool:
                futures = [pool.submit(stores.login.login, "alice", "correct-horse", f"10.0.0.{i}") for i in (1, 2)]
                results = [f.result() for f in futures]

            tokens = {r.token for r in results}
            assert len(tokens) == 2
            for token in tokens:
                assert stores.users.get_user_by_token(token).id == user.id
            assert len(stores.sessions.list_sessions(user.id)) == 2
        finally:
            db.close()
