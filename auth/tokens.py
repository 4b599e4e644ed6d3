"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  python-jose with HS256. Tokens are signed with SECRET_KEY and carry the
  user_name as the sub claim, the caller's payload (user_id), and iat. The
  exp claim is only added when token_expire_seconds > 0; by default tokens
  stay valid until the secret rotates.

  Algorithm pinning: verify() reads the unverified header first and refuses
  any alg other than the configured one before the signature is checked.
  jwt.decode() is also given algorithms=[alg], so an "alg": "none" token or a
  token signed with a different HMAC variant never verifies.

  verify() raises TokenInvalid on every failure. The gate turns that into the
  generic UnauthorizedRequest, so callers cannot tell a bad signature from a
  malformed token.

Layer rule: no imports from api/. The secret and expiry are injected, so this
module has no dependency on core/ either.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from auth.errors import TokenInvalid

logger = logging.getLogger("thingful.auth")

_ALGORITHM = "HS256"

# Claims managed by the service itself, stripped from the payload on verify.
_REGISTERED_CLAIMS = ("sub", "iat", "exp")


@dataclass(frozen=True)
class TokenClaims:
    """Identity recovered from a verified token."""

    subject: str
    payload: dict[str, Any] = field(default_factory=dict)


class TokenService:
    """Signs and verifies identity tokens with a shared secret.

    Usage:
        tokens = TokenService(secret=get_settings().secret_key)
        token = tokens.issue("ab", {"user_id": 1})
        claims = tokens.verify(token)   # TokenClaims(subject="ab", payload={"user_id": 1})
    """

    def __init__(self, secret: str, algorithm: str = _ALGORITHM, expire_seconds: int = 0) -> None:
        if not secret:
            raise ValueError("TokenService requires a non-empty secret.")
        self._secret = secret
        self.algorithm = algorithm
        self.expire_seconds = expire_seconds

    def issue(self, subject: str, payload: dict[str, Any]) -> str:
        """Encode a signed JWT for subject carrying payload."""
        now = datetime.now(timezone.utc)
        claims: dict[str, Any] = dict(payload)
        claims["sub"] = subject
        claims["iat"] = now
        if self.expire_seconds > 0:
            claims["exp"] = now + timedelta(seconds=self.expire_seconds)
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Verify token and return its claims. Raises TokenInvalid on any failure."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise TokenInvalid("Malformed token header") from exc
        if header.get("alg") != self.algorithm:
            logger.info("Rejected token signed with alg=%r", header.get("alg"))
            raise TokenInvalid("Unexpected signing algorithm")

        try:
            claims = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except JWTError as exc:
            raise TokenInvalid("Signature verification failed") from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise TokenInvalid("Token has no subject")
        payload = {k: v for k, v in claims.items() if k not in _REGISTERED_CLAIMS}
        return TokenClaims(subject=subject, payload=payload)
