"""
api/main.py -- FastAPI application entry point for OrgAccess.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan creates the CredentialStore (tables included) on startup, puts it on
app.state for auth.dependencies.get_store(), and disposes of it on shutdown.
Nothing else holds a database handle.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, FieldErrorOut, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.organisations import router as organisations_router
from api.routes.users import router as users_router
from auth.store import CredentialStore
from core.config import get_settings
from core.errors import AccessError, FieldError, ValidationFailed

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("orgaccess.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the credential store for the lifetime of the server.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    logger.info("OrgAccess API starting up")
    app.state.store = CredentialStore(_settings.database_url, timeout=_settings.store_timeout_seconds)
    await app.state.store.initialize()
    logger.info("Credential store initialized")

    yield

    await app.state.store.close()
    logger.info("OrgAccess API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="OrgAccess API",
    description="User registration, authentication, and organisation-scoped access control.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_host_list,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origin_list,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
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

app.include_router(auth_router, tags=["Auth"])
app.include_router(users_router, prefix="/api", tags=["Users"])
app.include_router(organisations_router, prefix="/api", tags=["Organisations"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=detail).model_dump())


@app.exception_handler(AccessError)
async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    """Render any domain failure raised by auth/ with its own status and code.

    Internal failures (e.g. StoreUnavailable) carry only the generic message;
    the chained driver error is logged, never returned.
    """
    if exc.status_code >= 500:
        logger.error("%s on %s %s", exc.__class__.__name__, request.method, request.url.path, exc_info=exc)
    return _error_response(
        exc.status_code,
        ErrorDetail(
            code=exc.code,
            message=exc.message,
            errors=[FieldErrorOut(field=e.field, message=e.message) for e in exc.errors],
        ),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(
        429,
        ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc.detail)),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


def _field_name(loc: tuple) -> str:
    """Join a pydantic error location into a dotted field name without the 'body' prefix."""
    parts = [str(p) for p in loc]
    if parts and parts[0] in ("body", "query", "path"):
        parts = parts[1:]
    return ".".join(parts) or "body"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with one entry per invalid field, rendered as ValidationFailed."""
    failure = ValidationFailed(errors=[FieldError(_field_name(e["loc"]), e["msg"]) for e in exc.errors()])
    return await access_error_handler(request, failure)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for framework-raised HTTP errors (404 route, 405 method)."""
    return _error_response(exc.status_code, ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged server-side only, never written to the
    response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorDetail(code="internal_error", message="An unexpected error occurred."))


# ---------------------------------------------------------------------------
# Health endpoint
#
# Public and unthrottled so load balancers can poll it.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health(request: Request) -> JSONResponse:
    """Report liveness and whether the credential store answers."""
    try:
        await request.app.state.store.ping()
        database = "ok"
    except AccessError:
        database = "error"
    status = "healthy" if database == "ok" else "degraded"
    body = HealthResponse(status=status, version=VERSION, components={"app": "ok", "database": database})
    return JSONResponse(status_code=200 if database == "ok" else 503, content=body.model_dump())
