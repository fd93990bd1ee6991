"""
FastAPI Application Factory
===========================

This is the main entry point for the Portal service: a landing endpoint
plus the sign-in and session surface used by the web front end.

Routers:
    - /auth/*       : Provider listing, password sign-in, session reads, sign-out, registration
    - /users/*      : Profile of the signed-in user
    - /health       : Health check endpoint

Environment Variables Required:
    - AUTH_SECRET: Secret for signing session tokens (32+ characters)

Optional:
    - DATABASE_URL: SQLAlchemy async URL (default: sqlite+aiosqlite:///./portal.db)
    - GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET
    - GITHUB_CLIENT_ID / GITHUB_CLIENT_SECRET
    - APPLE_CLIENT_ID / APPLE_CLIENT_SECRET
    - ALLOWED_ORIGINS: Comma-separated CORS origins
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn portal.app.main:app --reload --port 3000

    Production:
        uvicorn portal.app.main:app --host 0.0.0.0 --port 3000 --workers 4

    With custom log level:
        LOG_LEVEL=DEBUG uvicorn portal.app.main:app --reload
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from .auth import auth_router
from .config import Settings, get_settings, validate_configuration
from .db import UserAdapter, create_engine_from_settings, create_session_factory, init_models
from .models import ErrorResponse, HealthResponse
from .users import users_router


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging and report configuration problems
        - Create the database engine and ensure tables exist
        - Build the user adapter shared by all requests

    Shutdown tasks:
        - Dispose of the engine and its connection pool
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("portal.main")

    report = validate_configuration(settings)
    for warning in report["warnings"]:
        logger.warning(f"Configuration warning: {warning}")
    for error in report["errors"]:
        logger.error(f"Configuration error: {error}")

    engine = create_engine_from_settings(settings)
    await init_models(engine)

    app.state.engine = engine
    app.state.users = UserAdapter(create_session_factory(engine))

    logger.info(
        "Portal service started",
        extra={"service": "portal", "version": __version__}
    )

    yield

    logger.info("Shutting down portal service")
    await engine.dispose()
    logger.info("Portal service shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Lifespan management
        - CORS middleware
        - Route handlers
        - Exception handlers

    Args:
        settings: Settings to use; loaded from the environment when omitted

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Portal",
        description="Landing page backend with password and federated sign-in",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.settings = settings

    # Configure CORS
    if settings.allowed_origins_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins_list,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
            allow_headers=["*"],
        )

    app.include_router(auth_router)
    app.include_router(users_router)

    # Health check endpoint
    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """
        Health check endpoint.

        Returns:
            Service health information
        """
        return HealthResponse(status="ok", service="portal", version=__version__)

    # Root endpoint
    @app.get("/", tags=["System"])
    async def root() -> Dict[str, Any]:
        """
        Landing endpoint with service information.

        Returns:
            dict: Service metadata and available endpoints
        """
        return {
            "service": "portal",
            "version": __version__,
            "message": "Hello",
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
                "providers": "/auth/providers",
                "session": "/auth/session",
                "signIn": settings.SIGN_IN_PAGE,
            }
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a standardized error response.
        """
        logger = logging.getLogger("portal.main")
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        body = ErrorResponse(
            error="internal_server_error",
            message="An unexpected error occurred",
            details={"exception": str(exc)} if settings.LOG_LEVEL == "DEBUG" else None,
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "portal.app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
