"""
API request and response models for Thingful REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request fields are all Optional: a missing field is reported by the flows as
"Missing '<field>' in request body" (400) rather than by Pydantic as a
generic validation error, so clients get one error format for every input
problem.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegistrationRequest(BaseModel):
    """Request body for POST /api/users."""

    model_config = ConfigDict(extra="ignore")

    full_name: Optional[str] = Field(default=None, max_length=255)
    user_name: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = None
    nickname: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    model_config = ConfigDict(extra="ignore")

    user_name: Optional[str] = None
    password: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user account. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_name: str
    full_name: str
    nickname: str
    date_created: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Build a UserResponse from a stored User.

        nickname is NULL in storage when absent and "" on the wire.
        """
        return cls(
            id=user.id,
            user_name=user.user_name,
            full_name=user.full_name,
            nickname=user.nickname or "",
            date_created=user.date_created or "",
        )


class LoginResponse(BaseModel):
    """Response for a successful POST /api/auth/login. Only the token, nothing else."""

    model_config = ConfigDict(frozen=True)

    authToken: str  # noqa: N815 -- wire name expected by existing clients


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses: {"error": "<message>"}."""

    model_config = ConfigDict(frozen=True)

    error: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
