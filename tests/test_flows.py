"""Unit tests for auth/flows.py -- RegistrationFlow and LoginFlow.

Covers:
- Registration: required fields in order, policy errors surface verbatim,
  duplicate user_name, uniqueness race, no rows written on failure
- Login: missing fields, unknown user and wrong password share one error,
  token subject/payload on success
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from auth.errors import InvalidCredentials, MissingField, PasswordNotComplex, PasswordTooShort, UsernameTaken
from auth.flows import LoginFlow, RegistrationFlow
from auth.passwords import CredentialHasher
from auth.store import UserStore
from auth.tokens import TokenService

VALID = {"full_name": "A B", "user_name": "ab", "password": "aaAA11@@"}


@pytest.fixture
def registration(user_store: UserStore, hasher: CredentialHasher) -> RegistrationFlow:
    return RegistrationFlow(user_store, hasher)


@pytest.fixture
def login_flow(user_store: UserStore, hasher: CredentialHasher, tokens: TokenService) -> LoginFlow:
    return LoginFlow(user_store, hasher, tokens)


class TestRegistration:
    def test_happy_path(self, registration: RegistrationFlow, hasher: CredentialHasher) -> None:
        user = asyncio.run(registration.register(**VALID))
        assert user.id is not None
        assert user.user_name == "ab"
        assert user.nickname is None
        assert user.date_created
        assert user.password_hash != "aaAA11@@"
        assert asyncio.run(hasher.compare("aaAA11@@", user.password_hash)) is True

    def test_nickname_kept(self, registration: RegistrationFlow) -> None:
        user = asyncio.run(registration.register(**VALID, nickname="abby"))
        assert user.nickname == "abby"

    @pytest.mark.parametrize("field", ["full_name", "user_name", "password"])
    def test_missing_field(self, registration: RegistrationFlow, user_store: UserStore, field: str) -> None:
        body = dict(VALID)
        body[field] = None
        with pytest.raises(MissingField) as exc_info:
            asyncio.run(registration.register(**body))
        assert exc_info.value.message == f"Missing '{field}' in request body"
        assert user_store.count_users() == 0

    def test_empty_string_counts_as_missing(self, registration: RegistrationFlow) -> None:
        with pytest.raises(MissingField) as exc_info:
            asyncio.run(registration.register(full_name="", user_name="", password=""))
        assert exc_info.value.field == "full_name"

    def test_policy_error_surfaces_verbatim(self, registration: RegistrationFlow, user_store: UserStore) -> None:
        with pytest.raises(PasswordTooShort):
            asyncio.run(registration.register(full_name="A B", user_name="ab", password="1234567"))
        with pytest.raises(PasswordNotComplex):
            asyncio.run(registration.register(full_name="A B", user_name="ab", password="aaaAAA111"))
        assert user_store.count_users() == 0

    def test_duplicate_user_name(self, registration: RegistrationFlow, user_store: UserStore) -> None:
        asyncio.run(registration.register(**VALID))
        with pytest.raises(UsernameTaken) as exc_info:
            asyncio.run(registration.register(**VALID))
        assert exc_info.value.message == "User name already taken"
        assert user_store.count_users() == 1

    def test_uniqueness_race_reported_as_taken(self, registration: RegistrationFlow, user_store: UserStore) -> None:
        """The pre-check passes but the UNIQUE constraint fires on insert."""
        with patch.object(user_store, "has_user_with_username", return_value=False), patch.object(
            user_store, "insert_user", side_effect=IntegrityError("INSERT", {}, Exception("UNIQUE"))
        ):
            with pytest.raises(UsernameTaken):
                asyncio.run(registration.register(**VALID))

    def test_policy_checked_before_uniqueness(self, registration: RegistrationFlow) -> None:
        asyncio.run(registration.register(**VALID))
        with pytest.raises(PasswordTooShort):
            asyncio.run(registration.register(full_name="A B", user_name="ab", password="short"))


class TestLogin:
    def test_happy_path(self, login_flow: LoginFlow, user_store, seed_user, tokens: TokenService) -> None:
        user = seed_user(user_store, user_name="ab", password="aaAA11@@")
        token = asyncio.run(login_flow.login("ab", "aaAA11@@"))
        claims = tokens.verify(token)
        assert claims.subject == "ab"
        assert claims.payload == {"user_id": user.id}

    def test_missing_user_name(self, login_flow: LoginFlow) -> None:
        with pytest.raises(MissingField) as exc_info:
            asyncio.run(login_flow.login(None, "aaAA11@@"))
        assert exc_info.value.field == "user_name"

    def test_missing_password(self, login_flow: LoginFlow) -> None:
        with pytest.raises(MissingField) as exc_info:
            asyncio.run(login_flow.login("ab", None))
        assert exc_info.value.field == "password"

    def test_unknown_user_and_wrong_password_are_indistinguishable(
        self, login_flow: LoginFlow, user_store, seed_user
    ) -> None:
        seed_user(user_store, user_name="ab", password="aaAA11@@")
        with pytest.raises(InvalidCredentials) as unknown:
            asyncio.run(login_flow.login("nobody", "aaAA11@@"))
        with pytest.raises(InvalidCredentials) as wrong:
            asyncio.run(login_flow.login("ab", "wrong"))
        assert unknown.value.message == wrong.value.message == "Incorrect user_name or password"
        assert unknown.value.status_code == wrong.value.status_code == 400

    def test_unknown_user_still_runs_bcrypt(self, login_flow: LoginFlow, hasher: CredentialHasher) -> None:
        with patch.object(hasher, "burn", wraps=hasher.burn) as burn:
            with pytest.raises(InvalidCredentials):
                asyncio.run(login_flow.login("nobody", "aaAA11@@"))
        burn.assert_called_once_with("aaAA11@@")
