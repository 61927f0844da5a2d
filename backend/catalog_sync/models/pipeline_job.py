"""Pipeline job tracking for queued bulk operations."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Text, Numeric, DateTime, func
from sqlalchemy import JSON
from sqlalchemy.orm import Mapped, mapped_column

from catalog_sync.models.base import Base

JOB_PENDING = "pending"
JOB_RUNNING = "running"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"


class PipelineJob(Base):
    """Tracks execution of a queued pipeline job.

    Every bulk request creates a PipelineJob row before it is acknowledged,
    so progress and outcome can be looked up after the HTTP response.
    """

    __tablename__ = "pipeline_jobs"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    kind: Mapped[str] = mapped_column(String(50), nullable=False, index=True, comment="Job kind, e.g. 'publish_category'")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=JOB_PENDING,
        index=True,
        comment="Status: 'pending', 'running', 'completed', 'failed'",
    )
    params: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    result: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Timing
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_seconds: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    # Error tracking
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error_traceback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PipelineJob(id={self.id}, kind='{self.kind}', status='{self.status}')>"
