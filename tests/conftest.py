"""
tests/conftest.py -- Shared test fixtures for Thingful tests.

This module provides:
  - user_store / hasher / tokens: unit-test collaborators (in-memory SQLite,
    cheap bcrypt cost, fixed signing secret)
  - seed_user: insert a user with a known plaintext password
  - basic_header: build an "Authorization: Basic ..." value
  - api_client: TestClient wired to an isolated store via a patched lifespan
  - fault_client: same wiring, but server errors are returned, not raised

Design: api_client uses a named shared-memory SQLite URI (not plain :memory:)
because TestClient runs the app on a separate thread. Plain :memory: DBs are
per-connection and would present a blank schema to that thread. The named
URI format (file:name?mode=memory&cache=shared&uri=true) shares one in-memory
instance across all connections in the same process. A uuid suffix keeps
every test on its own database.

DEBUG and BCRYPT_ROUNDS must be set before any app import so get_settings()
auto-generates SECRET_KEY and hashes cheaply.
"""

from __future__ import annotations

import base64
import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any auth/core import so get_settings() picks it up.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import bcrypt
import pytest
from fastapi.testclient import TestClient

from api.main import app, init_services
from auth.models import User
from auth.passwords import CredentialHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"


# ---------------------------------------------------------------------------
# Unit-test collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(rounds=4)


@pytest.fixture
def signing_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def tokens(signing_secret: str) -> TokenService:
    return TokenService(secret=signing_secret)


@pytest.fixture
def seed_user() -> Callable[..., User]:
    """Return a function that inserts a user whose password is known in plaintext.

    Hashes synchronously with bcrypt at the minimum cost, the same format
    CredentialHasher produces.
    """

    def _seed(
        store: UserStore,
        user_name: str = "test-user-1",
        password: str = "password",
        full_name: str = "Test user 1",
        nickname: str | None = "TU1",
    ) -> User:
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")
        return store.insert_user(
            User(user_name=user_name, full_name=full_name, nickname=nickname, password_hash=hashed)
        )

    return _seed


@pytest.fixture
def basic_header() -> Callable[[str, str], str]:
    def _make(user_name: str, password: str) -> str:
        token = base64.b64encode(f"{user_name}:{password}".encode("utf-8")).decode("ascii")
        return f"Basic {token}"

    return _make


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore):
    """Return a lifespan that wires services around a pre-created test store."""

    @asynccontextmanager
    async def test_lifespan(app):
        init_services(app, user_store, get_settings())
        yield

    return test_lifespan


@pytest.fixture
def api_store() -> Generator[UserStore, None, None]:
    url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    store = UserStore(url)
    yield store
    store.close()


@pytest.fixture
def api_client(api_store: UserStore) -> Generator[TestClient, None, None]:
    """TestClient on the real app with an isolated in-memory store.

    Seed users through the api_store fixture before making requests.
    """
    app.router.lifespan_context = _patch_lifespan(api_store)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def fault_client(api_store: UserStore) -> Generator[TestClient, None, None]:
    """Like api_client, but unhandled exceptions come back as 500 responses."""
    app.router.lifespan_context = _patch_lifespan(api_store)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
