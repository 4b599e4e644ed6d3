"""
auth/flows.py -- Account registration and password login.

Both flows are plain classes wired with their collaborators at construction
time (store, hasher, token service). api/main.py builds one instance of each
during lifespan startup and parks it on app.state; tests build their own
against an in-memory store.

Failure contract:
  Every failure raises an AuthError subclass carrying the client-facing
  message. The API layer maps it to a 400 response. Crypto and storage faults
  propagate untouched (InternalFailure, SQLAlchemy errors) to the generic
  500 handler.

Username enumeration:
  LoginFlow reports InvalidCredentials for both an unknown user_name and a
  wrong password, and runs a bcrypt comparison in both cases so the two paths
  take the same time. The specific cause is logged, never returned.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from auth.errors import InvalidCredentials, MissingField, UsernameTaken
from auth.models import User
from auth.passwords import CredentialHasher, validate_password
from auth.store import UserStore
from auth.tokens import TokenService

logger = logging.getLogger("thingful.auth")


class RegistrationFlow:
    """Create a new account from a registration request."""

    _REQUIRED_FIELDS = ("full_name", "user_name", "password")

    def __init__(self, store: UserStore, hasher: CredentialHasher) -> None:
        self.store = store
        self.hasher = hasher

    async def register(
        self,
        full_name: str | None,
        user_name: str | None,
        password: str | None,
        nickname: str | None = None,
    ) -> User:
        """Validate, hash, and insert a new user. Returns the stored record.

        Raises MissingField, a PasswordError subclass, or UsernameTaken. No row
        is written unless every check passes.
        """
        supplied = {"full_name": full_name, "user_name": user_name, "password": password}
        for name in self._REQUIRED_FIELDS:
            if not supplied[name]:
                raise MissingField(name)

        policy_error = validate_password(password)
        if policy_error is not None:
            raise policy_error

        if self.store.has_user_with_username(user_name):
            raise UsernameTaken()

        password_hash = await self.hasher.hash(password)
        new_user = User(
            user_name=user_name,
            full_name=full_name,
            nickname=nickname,
            password_hash=password_hash,
            date_created=datetime.now(timezone.utc).isoformat(),
        )
        try:
            created = self.store.insert_user(new_user)
        except IntegrityError as exc:
            # A concurrent registration won the race past the pre-check.
            logger.info("Registration lost uniqueness race for user_name=%r", user_name)
            raise UsernameTaken() from exc

        logger.info("Registered user id=%s user_name=%r", created.id, created.user_name)
        return created


class LoginFlow:
    """Exchange a user_name/password pair for a signed auth token."""

    def __init__(self, store: UserStore, hasher: CredentialHasher, tokens: TokenService) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    async def login(self, user_name: str | None, password: str | None) -> str:
        """Return an auth token for valid credentials. Raises MissingField or InvalidCredentials."""
        if user_name is None:
            raise MissingField("user_name")
        if password is None:
            raise MissingField("password")

        user = self.store.get_by_username(user_name)
        if user is None:
            await self.hasher.burn(password)
            logger.info("Login rejected: unknown user_name=%r", user_name)
            raise InvalidCredentials()

        if not await self.hasher.compare(password, user.password_hash):
            logger.info("Login rejected: wrong password for user_name=%r", user_name)
            raise InvalidCredentials()

        return self.tokens.issue(user.user_name, {"user_id": user.id})
