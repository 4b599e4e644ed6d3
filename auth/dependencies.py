"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Both helpers read the Authorization header, ask the AccessGate on app.state
for a decision, and either return the admitted User or raise the rejection
reason. The AuthError exception handler in api/main.py renders it as
401 {"error": message}, so a rejected request never reaches the route body.

On admission the user is also stored on request.state.user for middleware
or handlers that do not take it as a parameter.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.gate import AccessGate
from auth.models import User


def _gate(request: Request) -> AccessGate:
    return request.app.state.gate


async def require_basic_auth(request: Request) -> User:
    """Require Authorization: Basic credentials.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(require_basic_auth)): ...
    """
    decision = await _gate(request).check_basic(request.headers.get("Authorization"))
    if not decision.admitted:
        raise decision.reason
    request.state.user = decision.user
    return decision.user


async def require_bearer_auth(request: Request) -> User:
    """Require Authorization: Bearer <token> issued by POST /api/auth/login."""
    decision = await _gate(request).check_bearer(request.headers.get("Authorization"))
    if not decision.admitted:
        raise decision.reason
    request.state.user = decision.user
    return decision.user
