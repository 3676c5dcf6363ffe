"""
FastAPI application factory for the Candidate Organizer API server.

Uses lifespan handler for startup/shutdown with async resource management.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from candidate_organizer.auth.connectors import init_connectors
from candidate_organizer.config import settings
from candidate_organizer.db.session import close_db, init_db
from candidate_organizer.errors import AuthError, PersistenceError
from candidate_organizer.logging_config import configure_logging, get_logger

from .health import router as health_router

logger = get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler for startup and shutdown."""
    # Startup
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    logger.info("Starting Candidate Organizer API server", version=VERSION)

    await init_db()
    logger.info("Database initialized")

    init_connectors()
    logger.info("Identity provider initialized")

    yield

    # Shutdown
    logger.info("Shutting down Candidate Organizer API server")
    await close_db()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Candidate Organizer API",
        description="Applicant tracking backend: Google login, sessions and user management",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # CORS middleware (credentials are cookies, so origins must be explicit)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
        expose_headers=["X-Request-ID"],
        max_age=300,
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Ensure every request has a request ID for logging correlation."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        structlog.contextvars.unbind_contextvars("request_id")

        return response

    @app.exception_handler(PersistenceError)
    async def persistence_exception_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        """Store failures: logged with cause, never echoed to the client."""
        logger.error(
            "Persistence failure",
            path=str(request.url.path),
            error=exc.message,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
        return JSONResponse(
            status_code=503,
            content={"detail": "Service temporarily unavailable"},
        )

    @app.exception_handler(AuthError)
    async def auth_exception_handler(request: Request, exc: AuthError) -> JSONResponse:
        """Domain errors that escaped a handler, rendered with their status."""
        logger.info("Request failed", path=str(request.url.path), error=exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message},
            headers=headers,
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled errors."""
        logger.error("Unhandled exception", exc_info=exc, path=str(request.url.path))
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # Health endpoints (no prefix)
    app.include_router(health_router)

    # Auth routes
    from candidate_organizer.api.routers.auth import router as auth_router

    app.include_router(auth_router, prefix=settings.api_prefix)

    # User management (admin only)
    from candidate_organizer.api.routers.users import router as users_router

    app.include_router(users_router, prefix=settings.api_prefix)

    return app


# Application instance
app = create_application()
