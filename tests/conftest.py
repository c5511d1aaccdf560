"""
tests/conftest.py -- Shared fixtures for authsession tests.

This module provides:
  - settings:     a test Settings value (fast bcrypt, rate limits off)
  - store:        UserStore on a private in-memory SQLite DB
  - codec / hasher / manager: the session core wired around that store
  - api_client:   (TestClient, app) for the full ASGI stack

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The uuid in the name keeps every test's DB separate.

Settings are built explicitly; nothing here depends on the developer's
environment or .env file.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.main import create_app
from auth.passwords import PasswordHasher
from auth.service import SessionManager
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import Settings

TEST_SECRET = "test-signing-secret-0123456789abcdef"
TEST_EMAIL = "a@x.com"
TEST_PASSWORD = "longenough1"


def make_settings(**overrides) -> Settings:
    values = {
        "jwt_secret": TEST_SECRET,
        "environment": "test",
        "log_level": "warn",
        "bcrypt_rounds": 4,
        "rate_limit_enabled": False,
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


def shared_memory_url() -> str:
    return f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def codec(settings: Settings) -> TokenCodec:
    return TokenCodec.from_settings(settings)


@pytest.fixture
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


@pytest.fixture
def manager(store: UserStore, codec: TokenCodec, hasher: PasswordHasher, settings: Settings) -> SessionManager:
    return SessionManager(store, codec, hasher, settings)


@pytest.fixture
def api_client(settings: Settings) -> Generator[tuple[TestClient, FastAPI], None, None]:
    """Yield (client, app) backed by a fresh in-memory store.

    The client keeps cookies between calls, so a login followed by
    POST /auth/refresh-token sends the refresh cookie like a browser would.
    """
    app = create_app(settings, store=UserStore(shared_memory_url()))
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, app
