"""In-process job queue for long-running pipeline operations.

Requests enqueue a job and get its id back immediately; a single asyncio
worker runs jobs one at a time, each in its own database session, and
records the outcome on the PipelineJob row.
"""

import asyncio
import traceback
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_sync.core.exceptions import NotFoundError, ValidationError
from catalog_sync.jobs.handlers import DEFAULT_HANDLERS
from catalog_sync.models.pipeline_job import (
    PipelineJob,
    JOB_PENDING,
    JOB_RUNNING,
    JOB_COMPLETED,
    JOB_FAILED,
)

logger = structlog.get_logger(__name__)

JobHandler = Callable[[AsyncSession, Dict[str, Any]], Awaitable[Dict[str, Any]]]


class JobQueue:
    """Single-worker FIFO of pipeline jobs.

    Usage:
        queue = JobQueue(async_session_factory)
        queue.start()
        job_id = await queue.enqueue("publish_category", category_id=3)
        job = await queue.get_job(job_id)
        await queue.stop()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        handlers: Optional[Dict[str, JobHandler]] = None,
    ):
        """Initialize job queue.

        Args:
            session_factory: Async session factory, one session per job
            handlers: Job kind -> handler, defaults to the pipeline handlers
        """
        self.session_factory = session_factory
        self.handlers: Dict[str, JobHandler] = dict(DEFAULT_HANDLERS if handlers is None else handlers)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self.logger = logger.bind(service="job_queue")

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the worker task on the running event loop."""
        if self.running:
            self.logger.warning("job_worker_already_running")
            return
        self._worker = asyncio.create_task(self._work(), name="pipeline-job-worker")
        self.logger.info("job_worker_started")

    async def stop(self) -> None:
        """Stop the worker. A job in progress is cancelled."""
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        self.logger.info("job_worker_stopped")

    async def enqueue(self, kind: str, **params: Any) -> str:
        """Persist a pending job and hand it to the worker.

        Raises:
            ValidationError: If no handler is registered for ``kind``
        """
        if kind not in self.handlers:
            raise ValidationError(f"Unknown job kind: {kind}")

        async with self.session_factory() as db:
            job = PipelineJob(kind=kind, status=JOB_PENDING, params=params)
            db.add(job)
            await db.commit()
            job_id = job.id

        await self._queue.put(job_id)
        self.logger.info("job_enqueued", job_id=job_id, kind=kind, params=params)
        return job_id

    async def get_job(self, job_id: str) -> PipelineJob:
        """Load a job by id.

        Raises:
            NotFoundError: If the job does not exist
        """
        async with self.session_factory() as db:
            job = await db.get(PipelineJob, job_id)
        if job is None:
            raise NotFoundError("PipelineJob", job_id)
        return job

    async def join(self) -> None:
        """Wait until the worker has finished every queued job."""
        await self._queue.join()

    async def drain(self) -> int:
        """Run every queued job in the calling task, without the worker.

        Returns:
            Number of jobs run
        """
        count = 0
        while not self._queue.empty():
            job_id = self._queue.get_nowait()
            try:
                await self.run_job(job_id)
            finally:
                self._queue.task_done()
            count += 1
        return count

    async def _work(self) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                await self.run_job(job_id)
            except Exception as e:
                # Never let one job stop the worker
                self.logger.error("job_worker_error", job_id=job_id, error=str(e), exc_info=True)
            finally:
                self._queue.task_done()

    async def run_job(self, job_id: str) -> None:
        """Run one job and record its outcome."""
        async with self.session_factory() as db:
            job = await db.get(PipelineJob, job_id)
            if job is None:
                self.logger.error("job_not_found", job_id=job_id)
                return

            kind = job.kind
            params = dict(job.params or {})
            start_time = datetime.now(timezone.utc)
            job.status = JOB_RUNNING
            job.started_at = start_time
            await db.commit()

            self.logger.info("job_started", job_id=job_id, kind=kind)

            try:
                result = await self.handlers[kind](db, params)
                await db.commit()
            except Exception as e:
                await db.rollback()
                job = await db.get(PipelineJob, job_id)
                end_time = datetime.now(timezone.utc)
                job.status = JOB_FAILED
                job.completed_at = end_time
                job.duration_seconds = Decimal(str(round((end_time - start_time).total_seconds(), 2)))
                job.error_message = str(e)
                job.error_traceback = traceback.format_exc()
                await db.commit()
                self.logger.error("job_failed", job_id=job_id, kind=kind, error=str(e), exc_info=True)
                return

            job = await db.get(PipelineJob, job_id)
            end_time = datetime.now(timezone.utc)
            job.status = JOB_COMPLETED
            job.result = result
            job.completed_at = end_time
            job.duration_seconds = Decimal(str(round((end_time - start_time).total_seconds(), 2)))
            await db.commit()

            self.logger.info(
                "job_completed",
                job_id=job_id,
                kind=kind,
                duration_seconds=float(job.duration_seconds),
            )
