"""
FastAPI Application Factory

Creates and configures the read-only analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog

from cow_analytics.config import get_settings
from cow_analytics.config.logging import configure_logging
from cow_analytics.exceptions import PayloadShapeError, SourceFetchError
from cow_analytics.serving.api.middleware import RequestLoggingMiddleware
from cow_analytics.serving.api.routes import (
    cows_router,
    dashboard_router,
    diagnostics_router,
    health_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()
    settings = get_settings()
    logger.info(
        "Starting COW Movement Analytics API",
        source=settings.source.source_id,
        cache_ttl_seconds=settings.cache.ttl_seconds if settings.cache.enabled else None,
    )
    yield
    logger.info("Shutting down...")


async def upstream_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """The snapshot source failed or returned something that is not a sheet"""
    logger.error(
        "Snapshot unavailable",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


def create_api_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()
    app = FastAPI(
        title="COW Movement Analytics API",
        description="Movement, utilization and dwell-time analytics for cells-on-wheels",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(SourceFetchError, upstream_error_handler)
    app.add_exception_handler(PayloadShapeError, upstream_error_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(dashboard_router, prefix="/api/v1", tags=["Dashboard"])
    app.include_router(cows_router, prefix="/api/v1", tags=["COWs"])
    app.include_router(diagnostics_router, prefix="/api/v1", tags=["Diagnostics"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "COW Movement Analytics API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app
