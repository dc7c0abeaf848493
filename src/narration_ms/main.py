"""
FastAPI Application Entry Point.

Usage:
    # Run with uvicorn
    uvicorn narration_ms.main:app --host 0.0.0.0 --port 8000

    # Or through the CLI
    narration-ms serve --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from narration_ms import __version__
from narration_ms.api.dependencies import get_narration_service
from narration_ms.api.routes import http_error_handler, router
from narration_ms.core.logging import configure_logging, get_logger, info
from narration_ms.services.narration_service import reset_service

_LOG = get_logger("narration-ms.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One-time setup: settings, backends (Firebase app init) and provider key
    service = get_narration_service()
    info(_LOG, "startup", backend=service.backends.name, version=__version__)
    yield
    reset_service()
    info(_LOG, "shutdown")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function:
        1. Configures structured logging (NARRATION_MS_LOG_LEVEL etc.)
        2. Creates the FastAPI instance
        3. Registers the narration router and its 405 handler
        4. Builds the service once at startup via the lifespan handler

    Returns:
        FastAPI: Configured application instance ready to serve requests.
    """
    configure_logging()

    app = FastAPI(title="narration-ms", version=__version__, lifespan=lifespan)
    app.include_router(router)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
