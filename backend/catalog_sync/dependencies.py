"""FastAPI dependency injection providers."""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.db.session import async_session_factory
from catalog_sync.jobs.queue import JobQueue
from catalog_sync.scrapers.source_site import SourceSiteAdapter
from catalog_sync.services.normalizer_service import NormalizerService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_source_adapter() -> AsyncGenerator[SourceSiteAdapter, None]:
    """Yield a source site adapter whose HTTP client lives for one request."""
    adapter = SourceSiteAdapter()
    try:
        yield adapter
    finally:
        await adapter.close()


async def get_normalizer(db: AsyncSession = Depends(get_db)) -> NormalizerService:
    return NormalizerService(db)


def get_job_queue(request: Request) -> JobQueue:
    """Return the job queue created in the application lifespan."""
    return request.app.state.job_queue
