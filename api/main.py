"""
api/main.py -- FastAPI application factory for authsession.

Run with:      uvicorn asgi:app --reload

create_app(settings, store=None) builds a fully wired app from an explicit
Settings value. Nothing in here reads the environment; asgi.py does that once
via get_settings() and hands the result in. Tests build their own Settings and
an in-memory UserStore.

Middleware stack (outermost to innermost):
  1. CORSMiddleware            -- credentials allowed so the refresh cookie flows
  2. SecurityHeadersMiddleware -- nosniff / frame deny / referrer policy
  3. SlowAPIMiddleware         -- per-route rate limits from api.limiter

Lifespan owns the UserStore: opened in the factory (or injected), disposed on
shutdown.
"""

from __future__ import annotations

import logging
import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from api.limiter import limiter
from api.models import CUSTOM_ERROR_TYPES, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.dependencies import Authenticator
from auth.errors import AppError
from auth.passwords import PasswordHasher
from auth.service import SessionManager
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import Settings

VERSION = "0.1.0"

_LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"

logger = logging.getLogger("authsession.api")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(settings: Settings) -> None:
    """Configure root logging once per process at LOG_LEVEL."""
    logging.basicConfig(level=settings.logging_level, format=_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    logging.getLogger("authsession").setLevel(settings.logging_level)


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add baseline security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# ---------------------------------------------------------------------------
# Error formatting
# ---------------------------------------------------------------------------


def format_validation_errors(errors: list[dict]) -> str:
    """Join every field error into one message, e.g.
    "Invalid email format, Password must be at least 8 characters".
    """
    messages = []
    for err in errors:
        if err.get("type") == "json_invalid":
            # loc is ("body", <byte offset>) here, not a field path.
            messages.append("Invalid JSON body")
            continue
        if err.get("type") in CUSTOM_ERROR_TYPES:
            messages.append(err["msg"])
            continue
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{field}: {err['msg']}" if field else err["msg"])
    return ", ".join(messages) or "Validation failed"


def _error(status_code: int, message: str, stack: str | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message, stack=stack).body())


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """All handlers return the same {"status": "error", "message": ...} envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, format_validation_errors(exc.errors()))

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """429 with Retry-After so clients know how long to back off."""
        response = _error(429, "Too many requests, please try again later.")
        response.headers["Retry-After"] = str(int(getattr(exc, "retry_after", 60)))
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _error(404, f"Can't find {request.url.path} on this server!")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected server errors.

        The stack trace goes to the log always and to the response body only
        outside production.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        stack = None if settings.is_production else "".join(traceback.format_exception(exc))
        return _error(500, "Something went wrong", stack=stack)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings, store: UserStore | None = None) -> FastAPI:
    """Build the ASGI app from an explicit configuration value.

    Args:
        settings: Validated, immutable Settings.
        store:    Optional pre-built UserStore (tests pass an in-memory one).
                  When omitted, one is opened on settings.database_url.
    """
    configure_logging(settings)

    user_store = store if store is not None else UserStore(settings.database_url)
    codec = TokenCodec.from_settings(settings)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "authsession API starting (environment=%s, access_ttl=%ss, refresh_ttl=%ss)",
            settings.environment,
            settings.access_ttl_seconds,
            settings.refresh_ttl_seconds,
        )
        yield
        app.state.user_store.close()
        logger.info("authsession API shutdown complete")

    app = FastAPI(title="authsession API", version=VERSION, lifespan=lifespan)

    app.state.settings = settings
    app.state.user_store = user_store
    app.state.authenticator = Authenticator(codec)
    app.state.session_manager = SessionManager(user_store, codec, hasher, settings)

    # SlowAPI looks for app.state.limiter by convention.
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origin.split(",")],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

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

    _register_exception_handlers(app, settings)

    app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])

    @app.get("/health", tags=["Health"])
    async def health() -> HealthResponse:
        """Liveness probe. Not rate limited, no auth."""
        return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())

    return app
