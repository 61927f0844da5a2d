"""Catalog entry schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CatalogEntryResponse(BaseModel):
    """Published catalog entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    subtitle: Optional[str] = None
    cover_image: Optional[str] = None
    category_id: Optional[int] = None
    author_id: Optional[int] = None
    price: Decimal
    duration_minutes: int
    size_gb: float
    language: Optional[str] = None
    subtitle_languages: Optional[str] = None
    resolution: Optional[str] = None
    resource_url: Optional[str] = None
    resource_code: Optional[str] = None
    source_type: str
    source_url: str
    status: str
    is_free: bool


class PublishResponse(BaseModel):
    success: bool
    action: Optional[str] = None
    entry: Optional[CatalogEntryResponse] = None
