"""
auth/gate.py -- Per-request admission check for protected routes.

Two modes, chosen per route:

  Basic   Authorization: Basic base64(user_name:password). The password is
          re-verified against the stored bcrypt hash on every request.
  Bearer  Authorization: Bearer <jwt> as issued by LoginFlow. The user_id
          claim is resolved to a stored user.

Per request:
    no credential --> MissingBasicToken / MissingBearerToken
    credential    --> Admitted(user) | Rejected(UnauthorizedRequest)

Every failure after the header is found collapses into UnauthorizedRequest:
an unknown user, a wrong password, an undecodable header, and a forged token
all look identical to the caller. The specific cause is logged at INFO.

The gate returns an AuthDecision rather than raising, so it stays usable
outside FastAPI. auth/dependencies.py turns a Rejected decision into the
exception that ends the request.
"""

from __future__ import annotations

import base64
import binascii
import logging

from auth.errors import MissingBasicToken, MissingBearerToken, TokenInvalid, UnauthorizedRequest
from auth.models import Admitted, AuthDecision, Credential, Rejected
from auth.passwords import CredentialHasher
from auth.store import UserStore
from auth.tokens import TokenService

logger = logging.getLogger("thingful.auth")


def _split_scheme(authorization: str | None, scheme: str) -> str | None:
    """Return the credential part of the header if it uses scheme, else None."""
    if not authorization:
        return None
    prefix = f"{scheme} "
    if not authorization.lower().startswith(prefix):
        return None
    return authorization[len(prefix) :].strip()


def parse_basic_token(token: str) -> Credential | None:
    """Decode base64(user_name:password). Returns None if the token is not decodable."""
    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    user_name, _, password = decoded.partition(":")
    return Credential(user_name=user_name, password=password)


class AccessGate:
    """Admission checks shared by every protected route."""

    def __init__(self, store: UserStore, hasher: CredentialHasher, tokens: TokenService) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    async def check_basic(self, authorization: str | None) -> AuthDecision:
        token = _split_scheme(authorization, "basic")
        if token is None:
            return Rejected(MissingBasicToken())

        credential = parse_basic_token(token)
        if credential is None:
            logger.info("Basic auth rejected: undecodable token")
            return Rejected(UnauthorizedRequest())
        if not credential.user_name or not credential.password:
            logger.info("Basic auth rejected: empty user_name or password")
            return Rejected(UnauthorizedRequest())

        user = self.store.get_by_username(credential.user_name)
        if user is None:
            await self.hasher.burn(credential.password)
            logger.info("Basic auth rejected: unknown user_name=%r", credential.user_name)
            return Rejected(UnauthorizedRequest())

        if not await self.hasher.compare(credential.password, user.password_hash):
            logger.info("Basic auth rejected: wrong password for user_name=%r", credential.user_name)
            return Rejected(UnauthorizedRequest())

        return Admitted(user)

    async def check_bearer(self, authorization: str | None) -> AuthDecision:
        token = _split_scheme(authorization, "bearer")
        if not token:
            return Rejected(MissingBearerToken())

        try:
            claims = self.tokens.verify(token)
        except TokenInvalid as exc:
            logger.info("Bearer auth rejected: %s", exc.message)
            return Rejected(UnauthorizedRequest())

        user_id = claims.payload.get("user_id")
        if type(user_id) is not int:
            # bool is an int subclass; a true claim must not resolve to id 1.
            logger.info("Bearer auth rejected: token for %r has no user_id claim", claims.subject)
            return Rejected(UnauthorizedRequest())

        user = self.store.get_by_id(user_id)
        if user is None:
            logger.info("Bearer auth rejected: user_id=%s no longer exists", user_id)
            return Rejected(UnauthorizedRequest())

        return Admitted(user)
