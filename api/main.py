"""
api/main.py -- FastAPI application entry point for Thingful.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- adds CORS headers for allowed browser origins
  2. log_requests    -- one log line per request with latency

Lifespan builds the auth services once and parks them on app.state:
  user_store, hasher, tokens, registration_flow, login_flow, gate.
Route handlers and auth dependencies read them from there; nothing in the
auth package holds a module-level connection or secret.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.users import router as users_router
from auth.errors import AuthError, InternalFailure
from auth.flows import LoginFlow, RegistrationFlow
from auth.gate import AccessGate
from auth.passwords import CredentialHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("thingful.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def init_services(app: FastAPI, user_store: UserStore, settings: Settings) -> None:
    """Construct the auth services around user_store and attach them to app.state.

    Shared by the real lifespan and the test lifespan in tests/conftest.py so
    both wire exactly the same object graph.
    """
    hasher = CredentialHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(secret=settings.secret_key, expire_seconds=settings.token_expire_seconds)
    app.state.user_store = user_store
    app.state.hasher = hasher
    app.state.tokens = tokens
    app.state.registration_flow = RegistrationFlow(user_store, hasher)
    app.state.login_flow = LoginFlow(user_store, hasher, tokens)
    app.state.gate = AccessGate(user_store, hasher, tokens)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the user store on startup and dispose of it on shutdown."""
    logger.info("Thingful API starting up")
    user_store = UserStore(_settings.database_url)
    init_services(app, user_store, _settings)
    logger.info("Auth initialized (bcrypt_rounds=%d)", _settings.bcrypt_rounds)

    yield

    app.state.user_store.close()
    logger.info("Thingful API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Thingful API",
    description="Account registration, login, and request gating for Thingful.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Location"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s 500 %.1fms %s",
            request.method,
            request.url.path,
            ms,
            request.client.host if request.client else "unknown",
        )
        raise
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix="/api", tags=["Users"])
app.include_router(auth_router, prefix="/api", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler returns the same {"error": "<message>"} envelope so clients
# parse errors uniformly regardless of status code.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(InternalFailure)
async def internal_failure_handler(request: Request, exc: InternalFailure) -> JSONResponse:
    """Crypto faults: log the chained cause, disclose nothing."""
    logger.error(
        "Internal auth failure on %s %s",
        request.method,
        request.url.path,
        exc_info=exc.__cause__ or exc,
    )
    return _error(exc.status_code, exc.message)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Validation (400) and gate (401) failures carry their own client-safe message."""
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrongly typed fields -- 400, same envelope as flow errors."""
    logger.info("Request validation failed on %s: %s", request.url.path, exc.errors())
    return _error(400, "Invalid request body")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors (storage outages and the like).

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(
        version=__version__,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
