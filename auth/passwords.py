"""
auth/passwords.py -- Password policy and bcrypt credential hashing.

Policy:
  validate_password() is a pure function. Rules run in a fixed order and the
  first failure wins: length, then surrounding whitespace, then complexity.
  A password that is both too short and not complex reports PasswordTooShort.

  The upper bound is also applied to the UTF-8 byte length because bcrypt
  only accepts 72 bytes of input. A 40-character password made of 3-byte
  characters would otherwise pass the policy and then fail inside bcrypt.

Hashing:
  bcrypt directly (no passlib wrapper). gensalt() produces a fresh random
  salt on every call and embeds it in the output, so two hashes of the same
  password differ.

  bcrypt is deliberately slow, so both hash() and compare() run on the default
  thread pool via asyncio.to_thread(). The event loop keeps serving other
  requests while a hash is computed.

  bcrypt raises ValueError for a bad cost factor or a malformed stored hash.
  Both are server faults, not user errors, so they surface as InternalFailure.

Layer rule: no imports from api/. Import from core/ is not needed here --
the cost factor is injected by the caller.
"""

from __future__ import annotations

import asyncio
import logging

import bcrypt

from auth.errors import (
    InternalFailure,
    PasswordError,
    PasswordNotComplex,
    PasswordPaddedWithSpaces,
    PasswordTooLong,
    PasswordTooShort,
)

logger = logging.getLogger("thingful.auth")

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 72
_BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


def _is_complex(password: str) -> bool:
    has_lower = any(c.islower() for c in password)
    has_upper = any(c.isupper() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_special = any(not c.isalnum() for c in password)
    return has_lower and has_upper and has_digit and has_special


def validate_password(password: str) -> PasswordError | None:
    """Return the first policy violation for password, or None if it is acceptable."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return PasswordTooShort()
    if len(password) > MAX_PASSWORD_LENGTH or len(password.encode("utf-8")) > _BCRYPT_MAX_BYTES:
        return PasswordTooLong()
    if password[0].isspace() or password[-1].isspace():
        return PasswordPaddedWithSpaces()
    if not _is_complex(password):
        return PasswordNotComplex()
    return None


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


class CredentialHasher:
    """bcrypt hashing with a configurable cost factor.

    Usage:
        hasher = CredentialHasher(rounds=12)
        stored = await hasher.hash("aaAA11@@")
        ok = await hasher.compare("aaAA11@@", stored)
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def _hash_sync(self, plaintext: str) -> str:
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")
        except ValueError as exc:
            logger.error("bcrypt hashing failed (rounds=%d): %s", self.rounds, exc)
            raise InternalFailure() from exc

    def _compare_sync(self, plaintext: str, stored_hash: str) -> bool:
        candidate = plaintext.encode("utf-8")
        if len(candidate) > _BCRYPT_MAX_BYTES:
            # Every stored hash came from a password within the limit.
            return False
        try:
            return bcrypt.checkpw(candidate, stored_hash.encode("utf-8"))
        except ValueError as exc:
            logger.error("bcrypt comparison failed -- stored hash is malformed: %s", exc)
            raise InternalFailure() from exc

    async def hash(self, plaintext: str) -> str:
        """Return a salted bcrypt hash of plaintext."""
        return await asyncio.to_thread(self._hash_sync, plaintext)

    async def compare(self, plaintext: str, stored_hash: str) -> bool:
        """Return True if plaintext matches stored_hash. Constant-time inside bcrypt."""
        return await asyncio.to_thread(self._compare_sync, plaintext, stored_hash)

    async def burn(self, plaintext: str) -> None:
        """Run a throwaway comparison so unknown-user paths cost as much as real ones.

        Callers invoke this when a user_name does not exist. Returning early
        would make that branch measurably faster than a wrong-password check
        and leak which user names are registered.
        """
        if self._dummy_hash is None:
            self._dummy_hash = await self.hash("thingful_timing_dummy")
        await self.compare(plaintext, self._dummy_hash)
