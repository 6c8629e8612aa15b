"""
FastAPI Application Factory.

Usage:
    # Development
    uvicorn api.app:create_app --factory --reload

    # Production
    uvicorn api.app:app --host 0.0.0.0 --port 8080 --workers 4

    # Or use the convenience function
    from api.app import create_app
    app = create_app()
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from core.errors import InvalidArgument, InvalidQuery, StorageUnavailable
from core.logging import configure_logging, get_logger
from core.middleware import RequestTracingMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Runs on startup:
    - Initialize logging
    - Connect the posting-list store

    Runs on shutdown:
    - Log shutdown
    """
    settings = get_settings()

    configure_logging(
        json_logs=settings.use_json_logs,
        log_level=settings.effective_log_level,
    )

    logger.info(
        "Starting matching API",
        environment=settings.environment,
        port=settings.port,
        storage_backend=settings.storage_backend,
    )

    # Connect eagerly so a bad REDIS_URL shows up at boot, not on first request
    try:
        from matching.service import get_matching_service
        service = get_matching_service()
        logger.info("Posting-list store ready", backend=service.store.backend_name)
    except StorageUnavailable as e:
        logger.error("Posting-list store unavailable at startup", error=str(e))

    yield

    logger.info("Shutting down matching API")


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def _register_error_handlers(app: FastAPI) -> None:
    """Map the engine's error taxonomy to HTTP status codes."""

    @app.exception_handler(InvalidArgument)
    async def invalid_argument_handler(request: Request, exc: InvalidArgument) -> JSONResponse:
        logger.info("Rejected invalid argument", detail=str(exc))
        return _error_response(400, exc)

    @app.exception_handler(InvalidQuery)
    async def invalid_query_handler(request: Request, exc: InvalidQuery) -> JSONResponse:
        logger.info("Rejected invalid query", detail=str(exc))
        return _error_response(400, exc)

    @app.exception_handler(StorageUnavailable)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailable) -> JSONResponse:
        logger.error("Storage unavailable", detail=str(exc))
        return _error_response(503, exc)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    app = FastAPI(
        title="RECON Matching API",
        description="""
        Reciprocal-compatibility matching over attribute and interest indices.

        ## Main Endpoints

        - `/api/members/{member_id}/attributes` - Record a member's attributes
        - `/api/members/{member_id}/interests` - Record interest in attributes
        - `/api/recommend` - Top-N reciprocal matches for an explicit query
        - `/api/members/{member_id}/recommend` - Top-N matches from stored profile

        ## Health Checks

        - `/health` - Basic health check
        - `/health/detailed` - Store connectivity
        - `/ready` - Readiness probe
        - `/live` - Liveness probe
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # =========================================================================
    # Middleware (order matters - first added = outermost)
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request tracing (adds X-Request-ID, logs timing)
    app.add_middleware(RequestTracingMiddleware)

    _register_error_handlers(app)

    # =========================================================================
    # Routes
    # =========================================================================

    from api.routes.health import router as health_router
    app.include_router(health_router, tags=["Health"])

    from api.routes.members import router as members_router
    app.include_router(members_router)

    from api.routes.recommend import router as recommend_router
    app.include_router(recommend_router)

    return app


# Create default app instance for uvicorn
# Usage: uvicorn api.app:app
app = create_app()
