"""Queued execution of bulk pipeline operations."""

from catalog_sync.jobs.handlers import (
    JOB_PUBLISH_CATEGORY,
    JOB_RESCRAPE_RESOURCES,
    JOB_SCRAPE_CATEGORY,
    JOB_SWEEP_FIRST_CATEGORY,
)
from catalog_sync.jobs.queue import JobQueue

__all__ = [
    "JobQueue",
    "JOB_PUBLISH_CATEGORY",
    "JOB_RESCRAPE_RESOURCES",
    "JOB_SCRAPE_CATEGORY",
    "JOB_SWEEP_FIRST_CATEGORY",
]
