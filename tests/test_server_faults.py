"""
tests/test_server_faults.py -- Integration tests for the generic 500 path.

Coverage:
  - A malformed stored hash surfaces as 500 through the InternalFailure handler
  - A storage fault during login surfaces as 500 through the catch-all handler
  - Neither response leaks the underlying error text
  - The request log still records a line for a request that raised
"""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from auth.models import User
from auth.store import UserStore

GENERIC_ERROR = {"error": "An unexpected error occurred."}


def test_malformed_stored_hash_is_500(api_client: TestClient, api_store: UserStore, basic_header) -> None:
    api_store.insert_user(User(user_name="ab", full_name="A B", password_hash="not-a-bcrypt-hash"))

    resp = api_client.get("/api/users/me", headers={"Authorization": basic_header("ab", "aaAA11@@")})
    assert resp.status_code == 500
    assert resp.json() == GENERIC_ERROR
    assert "salt" not in resp.text
    assert "bcrypt" not in resp.text


def test_storage_fault_during_login_is_500(
    fault_client: TestClient,
    api_store: UserStore,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def _db_down(user_name: str) -> User | None:
        raise RuntimeError("database is down at /var/lib/thingful.db")

    monkeypatch.setattr(api_store, "get_by_username", _db_down)
    caplog.set_level(logging.INFO, logger="thingful.api")

    resp = fault_client.post("/api/auth/login", json={"user_name": "ab", "password": "aaAA11@@"})
    assert resp.status_code == 500
    assert resp.json() == GENERIC_ERROR
    assert "database is down" not in resp.text
    assert "/var/lib" not in resp.text

    access_lines = [r.getMessage() for r in caplog.records if r.name == "thingful.api"]
    assert any(line.startswith("POST /api/auth/login 500") for line in access_lines)
