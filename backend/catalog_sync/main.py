"""Catalog Sync Backend -- FastAPI Application Entry Point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from catalog_sync.api.v1.router import api_v1_router
from catalog_sync.config import settings
from catalog_sync.core.exceptions import (
    CatalogSyncException,
    NotFoundError,
    PersistenceError,
    UpstreamFetchError,
    ValidationError,
)
from catalog_sync.core.logging import configure_logging
from catalog_sync.db.session import async_session_factory, engine
from catalog_sync.jobs.queue import JobQueue
from catalog_sync.models import Base
from catalog_sync.schemas import ErrorDetail, ErrorResponse

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    configure_logging()
    logger.info("catalog_sync_starting", environment=settings.ENVIRONMENT, debug=settings.DEBUG)

    # Auto-create tables on startup (safe for fresh deployments)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_tables_ready")

    app.state.job_queue = JobQueue(async_session_factory)
    if settings.ENVIRONMENT != "test":
        app.state.job_queue.start()
    else:
        logger.info("job_worker_disabled", reason="test environment")

    yield

    logger.info("catalog_sync_stopping")
    await app.state.job_queue.stop()
    await engine.dispose()


# Exception type -> (HTTP status, error code); first isinstance match wins
_ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (ValidationError, status.HTTP_400_BAD_REQUEST, "validation_error"),
    (UpstreamFetchError, status.HTTP_502_BAD_GATEWAY, "upstream_error"),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR, "persistence_error"),
)


async def catalog_sync_exception_handler(request: Request, exc: CatalogSyncException) -> JSONResponse:
    """Render domain exceptions as the standard error envelope."""
    status_code, code = status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"
    for exc_type, mapped_status, mapped_code in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            status_code, code = mapped_status, mapped_code
            break

    log = logger.error if status_code >= 500 else logger.warning
    log("request_failed", path=request.url.path, status_code=status_code, error=exc.message)

    body = ErrorResponse(error=ErrorDetail(code=code, message=exc.message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


app = FastAPI(
    title="Catalog Sync API",
    description="Course catalog ingestion and publishing pipeline",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_exception_handler(CatalogSyncException, catalog_sync_exception_handler)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Catalog Sync API",
        "version": "0.1.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
