"""
api/routes/auth.py -- Session (token) endpoints.

Routes:
  POST /api/auth/login   -- password login; returns {"authToken": ...}
  GET  /api/auth/me      -- current user (requires Bearer token)

Security:
  LoginFlow returns the same InvalidCredentials error for wrong user_name and
  wrong password. Do NOT inline store lookups here -- that reintroduces the
  timing and message differences the flow removes.
  Cache-Control: no-store on login responses so tokens are never cached.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse, UserResponse
from auth.dependencies import require_bearer_auth
from auth.flows import LoginFlow
from auth.models import User

# Auth policy:
# - POST /api/auth/login: public -- login endpoint must be unauthenticated
# - GET  /api/auth/me:    requires Bearer token (require_bearer_auth)
router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with user_name and password; return a signed token."""
    flow: LoginFlow = request.app.state.login_flow
    token = await flow.login(body.user_name, body.password)
    resp = JSONResponse(status_code=200, content=LoginResponse(authToken=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=UserResponse)
async def me(current_user: User = Depends(require_bearer_auth)) -> UserResponse:
    """Return the account identified by the Bearer token."""
    return UserResponse.from_user(current_user)
