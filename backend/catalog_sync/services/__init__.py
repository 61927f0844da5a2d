"""Business logic services for the catalog pipeline."""

from catalog_sync.services.resource_service import ResourceService
from catalog_sync.services.tag_service import TagService
from catalog_sync.services.parameter_service import ParameterService
from catalog_sync.services.crawler_service import CrawlerService, CrawlResult, DiscoveryResult
from catalog_sync.services.detail_service import DetailService, ScrapeOutcome, BatchResult
from catalog_sync.services.normalizer_service import NormalizerService
from catalog_sync.services.category_matcher import match_category, match_category_with_tier
from catalog_sync.services.publisher_service import (
    PublisherService,
    PublishOptions,
    PublishOutcome,
    PublishBatchResult,
)
from catalog_sync.services.taxonomy_service import TaxonomyService

__all__ = [
    "ResourceService",
    "TagService",
    "ParameterService",
    "CrawlerService",
    "CrawlResult",
    "DiscoveryResult",
    "DetailService",
    "ScrapeOutcome",
    "BatchResult",
    "NormalizerService",
    "match_category",
    "match_category_with_tier",
    "PublisherService",
    "PublishOptions",
    "PublishOutcome",
    "PublishBatchResult",
    "TaxonomyService",
]
