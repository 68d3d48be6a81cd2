"""
FastAPI Gateway Application Factory
===================================

This is the main entry point for the auth gateway that sits between the
Oryn web console and GitHub.

Architecture:
    Browser (console UI) → Gateway (this service) → GitHub OAuth / REST API

Routers:
    - /api/auth/*   : Login, callback, identity check, logout
    - /health       : Health check endpoint

Environment Variables Required:
    - GITHUB_CLIENT_ID: GitHub OAuth App client ID
    - GITHUB_CLIENT_SECRET: GitHub OAuth App client secret
    - GITHUB_REDIRECT_URI: Callback URL registered with the OAuth App
    - SESSION_SECRET: Secret for signing session tokens (32+ chars)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn oryn_gateway.main:create_app --factory --reload --port 8080

    Production:
        uvicorn oryn_gateway.main:create_app --factory --host 0.0.0.0 --port 8080 --workers 4
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from oryn_gateway import __version__
from oryn_gateway.auth import auth_router
from oryn_gateway.auth.github import GitHubOAuthClient
from oryn_gateway.auth.session import InMemoryRevocationList, SessionCodec
from oryn_gateway.config import Settings, get_settings, validate_configuration
from oryn_gateway.models import ErrorResponse, HealthResponse

SERVICE_NAME = "oryn-gateway"


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
        - Configure logging
        - Report configuration problems (without echoing secrets)
        - Log service startup information
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("oryn_gateway.main")

    status = validate_configuration(settings)
    for error in status["errors"]:
        logger.error("Configuration error: %s", error)
    for warning in status["warnings"]:
        logger.warning("Configuration warning: %s", warning)

    logger.info(
        "Starting gateway service (client_id=%s, redirect_uri=%s, revocation_enabled=%s, log_level=%s)",
        settings.GITHUB_CLIENT_ID,
        settings.GITHUB_REDIRECT_URI,
        settings.SESSION_REVOCATION_ENABLED,
        settings.LOG_LEVEL,
    )

    yield

    logger.info("Gateway service shutdown complete")


# Create FastAPI application
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Lifespan management
        - CORS middleware (only when ALLOWED_ORIGINS is set)
        - Route handlers
        - Exception handlers

    Args:
        settings: Explicit settings; loaded from the environment when omitted

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Oryn Auth Gateway",
        description="GitHub OAuth login and session gateway for the Oryn console",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    revocations = InMemoryRevocationList() if settings.SESSION_REVOCATION_ENABLED else None

    app.state.settings = settings
    app.state.session_codec = SessionCodec.from_settings(settings, revocations=revocations)
    app.state.github_client = GitHubOAuthClient(settings)

    # Configure CORS
    origins = settings.allowed_origins_list
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    # Auth router: Handles GitHub login, callback, identity check and logout
    app.include_router(auth_router)

    # Health check endpoint
    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.

        Returns:
            dict: Service health information
        """
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__,
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Render routing errors (404, 405) with the gateway's error body."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
            headers=getattr(exc, "headers", None),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a standardized error response.
        """
        logger = logging.getLogger("oryn_gateway.main")
        logger.error(
            "Unhandled exception: %s on %s %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error").model_dump(exclude_none=True),
        )

    return app


if __name__ == "__main__":
    """
    Direct execution entry point.

    This allows running the service directly with: python -m oryn_gateway.main
    """
    settings = get_settings()

    uvicorn.run(
        "oryn_gateway.main:create_app",
        factory=True,
        host=settings.GATEWAY_HOST,
        port=settings.GATEWAY_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
