"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from signposting.api.v1.router import api_router
from signposting.core.config import settings
from signposting.core.logging import setup_logging
from signposting.db.init_db import create_tables
from signposting.rules.models import LOGIC_VERSION

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    logger.info(
        f"Starting Signposting Toolkit API (env={settings.env}, "
        f"LUTS logic v{LOGIC_VERSION})"
    )

    if settings.init_db_on_startup:
        logger.info("Creating database tables...")
        await create_tables()

    yield

    # Shutdown
    logger.info("Shutting down Signposting Toolkit API")


# Create FastAPI application
app = FastAPI(
    title="Signposting Toolkit API",
    description="Deterministic clinical decision support for GP surgeries",
    version="0.1.0",
    docs_url="/docs" if settings.is_dev else None,
    redoc_url="/redoc" if settings.is_dev else None,
    openapi_url="/openapi.json" if settings.is_dev else None,
    lifespan=lifespan,
)

# CORS middleware (configure appropriately for production)
if settings.is_dev:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:3001"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    # Don't expose internal errors in production
    if settings.is_prod:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


# Include API router
app.include_router(api_router, prefix="/api/v1")


# Root endpoint
@app.get("/", include_in_schema=False)
async def root() -> dict:
    """Root endpoint with service info."""
    return {
        "service": "Signposting Toolkit API",
        "version": "0.1.0",
        "luts_logic_version": LOGIC_VERSION,
        "docs": "/docs" if settings.is_dev else "Disabled in production",
    }
