"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.dependencies import get_db, get_job_queue
from catalog_sync.jobs.queue import JobQueue
from catalog_sync.schemas import HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    """Return service health status.

    Checks database connectivity and whether the job worker is running.
    """
    services = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        db_status = "ok"
    except SQLAlchemyError as e:
        db_status = f"error: {str(e)}"
    services["database"] = db_status

    worker_status = "ok" if queue.running else "stopped"
    services["job_worker"] = worker_status

    overall_status = "ok" if all(s == "ok" for s in services.values()) else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        job_worker=worker_status,
        services=services,
    )
