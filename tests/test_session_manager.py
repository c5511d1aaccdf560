"""Unit tests for auth/service.py -- the session lifecycle.

Covers the single-active-session invariant, refresh rotation, revocation
side effects, and the no-enumeration login error. Runs against a real
in-memory UserStore; no mocking of the store, so every assertion about
"the stored refresh token" is an assertion about the database.
"""

from dataclasses import fields
from datetime import datetime, timedelta, timezone

import pytest

from auth.errors import ConflictError, NotFoundError, UnauthorizedError
from auth.tokens import TokenCodec
from conftest import TEST_EMAIL, TEST_PASSWORD


@pytest.fixture
def registered(manager):
    return manager.register(TEST_EMAIL, TEST_PASSWORD, "Ada")


class TestRegister:
    def test_returns_sanitized_user_and_tokens(self, manager, registered, codec):
        assert registered.user.email == TEST_EMAIL
        assert registered.user.name == "Ada"
        names = {f.name for f in fields(registered.user)}
        assert "password_hash" not in names
        assert "refresh_token" not in names
        assert codec.verify(registered.tokens.access_token) == registered.user.id

    def test_stores_refresh_token_and_hashes_password(self, store, registered):
        user = store.find_by_id(registered.user.id)
        assert user.refresh_token == registered.tokens.refresh_token
        assert user.password_hash != TEST_PASSWORD

    def test_duplicate_email_conflicts(self, manager, registered):
        with pytest.raises(ConflictError, match="User with this email already exists"):
            manager.register(TEST_EMAIL, "anotherpassword")

    def test_name_is_optional(self, manager):
        assert manager.register("b@x.com", TEST_PASSWORD).user.name is None

    def test_returned_user_matches_stored_record(self, manager, registered):
        assert registered.user == manager.get_profile(registered.user.id)


class TestLogin:
    def test_login_after_register(self, manager, registered, codec):
        result = manager.login(TEST_EMAIL, TEST_PASSWORD)
        assert result.user.id == registered.user.id
        assert codec.verify(result.tokens.access_token) == registered.user.id

    def test_returned_user_reflects_session_write(self, manager, registered):
        result = manager.login(TEST_EMAIL, TEST_PASSWORD)
        assert result.user.updated_at >= registered.user.updated_at
        assert result.user == manager.get_profile(registered.user.id)

    def test_wrong_password_and_unknown_email_look_identical(self, manager, registered):
        with pytest.raises(UnauthorizedError) as wrong_pw:
            manager.login(TEST_EMAIL, "wrongpassword")
        with pytest.raises(UnauthorizedError) as unknown:
            manager.login("nobody@x.com", TEST_PASSWORD)
        assert wrong_pw.value.message == unknown.value.message == "Invalid email or password"

    def test_login_invalidates_previous_refresh_token(self, manager, registered):
        manager.login(TEST_EMAIL, TEST_PASSWORD)
        with pytest.raises(UnauthorizedError):
            manager.refresh(registered.tokens.refresh_token)

    def test_second_login_invalidates_first_login(self, manager, registered):
        first = manager.login(TEST_EMAIL, TEST_PASSWORD)
        second = manager.login(TEST_EMAIL, TEST_PASSWORD)
        with pytest.raises(UnauthorizedError):
            manager.refresh(first.tokens.refresh_token)
        assert manager.refresh(second.tokens.refresh_token)


class TestRefresh:
    def test_rotation(self, manager, registered, store, codec):
        old = registered.tokens.refresh_token
        pair = manager.refresh(old)

        assert pair.refresh_token != old
        assert codec.verify(pair.access_token) == registered.user.id
        assert store.find_by_id(registered.user.id).refresh_token == pair.refresh_token
        with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
            manager.refresh(old)
        assert manager.refresh(pair.refresh_token)

    def test_unknown_token_does_not_mutate(self, manager, registered, store):
        before = store.find_by_id(registered.user.id)
        never_issued = TokenCodec("x" * 40).issue(registered.user.id, 60)
        with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
            manager.refresh(never_issued)
        assert store.find_by_id(registered.user.id) == before

    def test_expired_stored_token_is_cleared(self, manager, registered, store, codec):
        past = datetime.now(timezone.utc) - timedelta(days=30)
        expired = codec.issue(registered.user.id, 60, now=past)
        store.set_refresh_token(registered.user.id, expired)

        with pytest.raises(UnauthorizedError, match="Invalid or expired refresh token"):
            manager.refresh(expired)
        assert store.find_by_id(registered.user.id).refresh_token is None

        # No resurrection: the same token keeps failing.
        with pytest.raises(UnauthorizedError):
            manager.refresh(expired)

    def test_stored_but_forged_token_is_cleared(self, manager, registered, store):
        forged = TokenCodec("y" * 40).issue(registered.user.id, 60)
        store.set_refresh_token(registered.user.id, forged)
        with pytest.raises(UnauthorizedError, match="Invalid or expired refresh token"):
            manager.refresh(forged)
        assert store.find_by_id(registered.user.id).refresh_token is None

    def test_empty_token(self, manager, registered):
        with pytest.raises(UnauthorizedError):
            manager.refresh("")


class TestLogout:
    def test_logout_then_refresh_fails(self, manager, registered):
        manager.logout(registered.user.id)
        with pytest.raises(UnauthorizedError):
            manager.refresh(registered.tokens.refresh_token)

    def test_logout_is_idempotent(self, manager, registered, store):
        manager.logout(registered.user.id)
        manager.logout(registered.user.id)
        manager.logout("no-such-id")
        assert store.find_by_id(registered.user.id).refresh_token is None

    def test_access_token_survives_logout(self, manager, registered, codec):
        """Known trust window: logout does not revoke issued access tokens."""
        manager.logout(registered.user.id)
        assert codec.verify(registered.tokens.access_token) == registered.user.id

    def test_login_after_logout(self, manager, registered):
        manager.logout(registered.user.id)
        result = manager.login(TEST_EMAIL, TEST_PASSWORD)
        assert manager.refresh(result.tokens.refresh_token)


class TestProfile:
    def test_profile(self, manager, registered):
        profile = manager.get_profile(registered.user.id)
        assert profile.id == registered.user.id
        assert profile.email == TEST_EMAIL

    def test_missing_user(self, manager):
        with pytest.raises(NotFoundError, match="User not found"):
            manager.get_profile("no-such-id")
