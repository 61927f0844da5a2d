"""Pydantic schemas for the Catalog Sync API.

All request/response models are defined here for easy import.
"""

from catalog_sync.schemas.common import ApiResponse, ErrorDetail, ErrorResponse
from catalog_sync.schemas.outline import Lecture, Outline, Section
from catalog_sync.schemas.external import (
    CrawlResponse,
    DiscoveryResponse,
    ExternalCategoryResponse,
    ExternalResourceBrief,
    ExternalResourceResponse,
    NormalizedTextResponse,
    ScrapeResponse,
    TaxonomyImportResponse,
)
from catalog_sync.schemas.catalog import CatalogEntryResponse, PublishResponse
from catalog_sync.schemas.job import JobAcceptedResponse, JobStatusResponse
from catalog_sync.schemas.health import HealthCheckResponse

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    # Outline
    "Lecture",
    "Outline",
    "Section",
    # External records
    "CrawlResponse",
    "DiscoveryResponse",
    "ExternalCategoryResponse",
    "ExternalResourceBrief",
    "ExternalResourceResponse",
    "NormalizedTextResponse",
    "ScrapeResponse",
    "TaxonomyImportResponse",
    # Catalog
    "CatalogEntryResponse",
    "PublishResponse",
    # Jobs
    "JobAcceptedResponse",
    "JobStatusResponse",
    # Health
    "HealthCheckResponse",
]
