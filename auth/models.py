"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own the
domain shape; stores, flows, and routes do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Union

from auth.errors import AuthError


@dataclass
class User:
    """A registered account.

    password_hash is the bcrypt output, never the plaintext. repr=False keeps
    it out of log lines and tracebacks; the API layer never serializes it.

    nickname is None when the user did not supply one. Responses render that
    as an empty string, storage keeps NULL.
    """

    user_name: str
    full_name: str
    password_hash: str = field(repr=False)
    id: int | None = None
    nickname: str | None = None
    date_created: str | None = None


@dataclass(frozen=True)
class Credential:
    """A user_name/password pair decoded from a Basic header. Never persisted."""

    user_name: str
    password: str = field(repr=False)


# ---------------------------------------------------------------------------
# Gate decisions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Admitted:
    user: User
    admitted: ClassVar[bool] = True


@dataclass(frozen=True)
class Rejected:
    reason: AuthError
    admitted: ClassVar[bool] = False


AuthDecision = Union[Admitted, Rejected]
