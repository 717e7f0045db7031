"""
api/main.py -- FastAPI application entry point for Stashbox identity.

Exposes registration, login, logout, password change and account deletion
over HTTP. The rest of the Stashbox application consumes the session these
endpoints issue through auth.dependencies.get_current_account.

Run with:      uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. SecurityHeadersMiddleware -- frame/sniffing/XSS/CSP headers on every response
  2. TrustedHostMiddleware     -- rejects requests with unexpected Host headers
  3. CORSMiddleware            -- adds CORS headers for allowed browser origins
  4. log_requests              -- one log line per request with latency

Lifespan handles startup (account store, session manager, purge task) and
shutdown (cancel purge task, close DB connections) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.security import SecurityHeadersMiddleware, apply_security_headers
from auth.bootstrap import build_credential_service
from auth.errors import AuthError
from core.config import get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("stashbox.api")

settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------

_PURGE_INTERVAL_SECONDS = 60 * 60


async def _purge_loop(app: FastAPI) -> None:
    """Delete expired sessions every hour.

    Expired sessions are already rejected on resolve(); this only keeps the
    session table from growing without bound. The purge itself is blocking
    SQL, so it runs in a worker thread. CancelledError from task.cancel()
    during shutdown propagates out of asyncio.sleep and unwinds cleanly.
    """
    while True:
        await asyncio.sleep(_PURGE_INTERVAL_SECONDS)
        await asyncio.to_thread(app.state.sessions.purge_expired)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. app.state carries:
      credentials   -- CredentialService used by the route handlers
      account_store -- AccountStore, also read by the auth dependencies
      sessions      -- SessionManager, also read by the auth dependencies
    """
    logger.info("Stashbox identity API starting up")
    service = build_credential_service(settings)
    app.state.credentials = service
    app.state.account_store = service.store
    app.state.sessions = service.sessions
    logger.info(
        "Auth initialized (session_backend=%s, session_ttl=%ss)",
        settings.session_backend,
        settings.session_ttl_seconds,
    )
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    with suppress(asyncio.CancelledError):
        await app.state.purge_task
    app.state.sessions.close()
    app.state.account_store.close()
    logger.info("Stashbox identity API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Stashbox Identity API",
    description="Account registration, password login and session management for Stashbox.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Request logging middleware
#
# Registered first with @app.middleware so it sits innermost; add_middleware()
# calls below wrap it.
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
# Middleware stack
#
# Each add_middleware() call wraps everything registered before it, so the
# last one added is the outermost. SecurityHeadersMiddleware goes last so its
# headers land on every response, including TrustedHost and CORS rejections.
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

app.add_middleware(SecurityHeadersMiddleware, csp=settings.content_security_policy)

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render a credential-service error with its own status and code."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with structured error when a request body is missing fields or malformed."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers and dependencies raise HTTPException with a dict detail
    ({"code": ..., "message": ...}). When detail is already structured, use
    it directly as the error field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged, never written to the response body. This
    handler runs in ServerErrorMiddleware, outside SecurityHeadersMiddleware,
    so it applies the security headers itself.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    response = JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )
    return apply_security_headers(response, settings.content_security_policy)


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    try:
        database = "ok" if request.app.state.account_store.ping() else "error"
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
