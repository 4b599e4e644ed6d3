"""
auth/errors.py -- Error taxonomy for registration, login, and request gating.

Every failure the auth core can produce is an AuthError subclass carrying the
exact client-facing message and the HTTP status it maps to. The API layer
registers one exception handler for AuthError and renders {"error": message}.

Two families:
  ValidationFailure (400) -- user input problems. Messages are specific.
  AccessDenied (401)      -- gate rejections. Messages are deliberately vague:
      "no such user" and "wrong password" both become UnauthorizedRequest so
      the response never reveals whether an account exists.

InternalFailure (500) wraps unexpected crypto faults. Its message is generic;
the cause is chained (raise ... from exc) and logged server-side only.

Layer rule: stdlib only. No imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every failure the auth core reports to a caller."""

    status_code: int = 400
    code: str = "auth_error"
    message: str = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# 400 -- input validation
# ---------------------------------------------------------------------------


class ValidationFailure(AuthError):
    status_code = 400
    code = "validation_error"


class MissingField(ValidationFailure):
    code = "missing_field"

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Missing '{field}' in request body")


class PasswordError(ValidationFailure):
    """Raised (or returned) when a password violates the password policy."""

    code = "password_policy"


class PasswordTooShort(PasswordError):
    code = "password_too_short"
    message = "Password must be longer than 8 characters"


class PasswordTooLong(PasswordError):
    code = "password_too_long"
    message = "Password must be less than 72 characters"


class PasswordPaddedWithSpaces(PasswordError):
    code = "password_padded"
    message = "Password must not start or end with empty spaces"


class PasswordNotComplex(PasswordError):
    code = "password_not_complex"
    message = "Password must contain 1 upper case, lower case, number and special character"


class UsernameTaken(ValidationFailure):
    code = "username_taken"
    message = "User name already taken"


class InvalidCredentials(ValidationFailure):
    # Same message for unknown user_name and wrong password.
    code = "invalid_credentials"
    message = "Incorrect user_name or password"


# ---------------------------------------------------------------------------
# 401 -- request gating
# ---------------------------------------------------------------------------


class AccessDenied(AuthError):
    status_code = 401
    code = "unauthorized"
    message = "Unauthorized request"


class MissingBasicToken(AccessDenied):
    code = "missing_basic_token"
    message = "Missing basic token"


class MissingBearerToken(AccessDenied):
    code = "missing_bearer_token"
    message = "Missing bearer token"


class UnauthorizedRequest(AccessDenied):
    pass


class TokenInvalid(AuthError):
    """Token failed verification. The gate converts this to UnauthorizedRequest."""

    status_code = 401
    code = "token_invalid"
    message = "Invalid token"


# ---------------------------------------------------------------------------
# 500 -- unexpected faults
# ---------------------------------------------------------------------------


class InternalFailure(AuthError):
    status_code = 500
    code = "internal_error"
    message = "An unexpected error occurred."
