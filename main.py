"""MKcode backend - accounts, sessions and site administration API."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from mkcode.clock import Clock
from mkcode.config import Settings, get_settings
from mkcode.database import create_db_engine, create_session_factory
from mkcode.errors import AppError, InternalError
from mkcode.rate_limit import RateLimitMiddleware
from mkcode.routers import admin_router, auth_router, profile_router
from mkcode.services.container import build_services
from mkcode.services.mailer import Mailer

APP_VERSION = "1.1.0"

# Logging
logger = logging.getLogger("mkcode")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 1024 * 1024  # 1MB of JSON is far beyond any auth payload

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content={"detail": "Request body too large"})
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = (
        "/api/register",
        "/api/login",
        "/api/profile",
        "/api/request-reset",
        "/api/verify-reset-code",
        "/api/reset-password",
        "/api/admin/",
    )

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        # Log sensitive operations
        path = request.url.path
        method = request.method
        if method in ("POST", "PUT", "DELETE") and path.startswith(self.AUDIT_PATHS):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors as JSON."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with field messages when the request body or query fails validation."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        errors.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"detail": "Validation failed", "errors": errors})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the real failure and give the client nothing but a generic message."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=InternalError.status_code, content={"detail": InternalError.detail})


def create_app(settings: Settings | None = None, clock: Clock | None = None, mailer: Mailer | None = None) -> FastAPI:
    """Build the application with its own engine and services.

    The engine outlives any single server run; callers that create throwaway
    apps (tests) dispose ``app.state.engine`` themselves.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for warning in settings.validate():
            logger.warning("Config: %s", warning)
        yield

    app = FastAPI(
        title="MKcode Backend",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    engine = create_db_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.services = build_services(settings, clock=clock, mailer=mailer)

    # Innermost, so 429s still get security headers and CORS
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(AuditLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(admin_router)

    # --- Health check ---
    @app.get("/api/health")
    def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "ok", "app": "mkcode", "version": APP_VERSION, "environment": settings.APP_ENV}

    return app


app = create_app()
