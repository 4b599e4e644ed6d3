"""
api/routes/users.py -- Account registration endpoints.

Routes:
  POST /api/users      -- register a new account (public)
  GET  /api/users/me   -- current user (requires Basic credentials)

The response body never includes the password or its hash; UserResponse has
no field for either.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import RegistrationRequest, UserResponse
from auth.dependencies import require_basic_auth
from auth.flows import RegistrationFlow
from auth.models import User

# Auth policy:
# - POST /api/users:    public -- anyone may register
# - GET  /api/users/me: requires Basic credentials (require_basic_auth)
router = APIRouter()


@router.post("/users", response_model=UserResponse, status_code=201)
async def register(request: Request, body: RegistrationRequest) -> JSONResponse:
    """Create an account. Returns 201 with a Location header for the new user."""
    flow: RegistrationFlow = request.app.state.registration_flow
    created = await flow.register(
        full_name=body.full_name,
        user_name=body.user_name,
        password=body.password,
        nickname=body.nickname,
    )
    return JSONResponse(
        status_code=201,
        content=UserResponse.from_user(created).model_dump(),
        headers={"Location": f"{request.url.path.rstrip('/')}/{created.id}"},
    )


@router.get("/users/me", response_model=UserResponse)
async def me(current_user: User = Depends(require_basic_auth)) -> UserResponse:
    """Return the account whose Basic credentials accompany the request."""
    return UserResponse.from_user(current_user)
