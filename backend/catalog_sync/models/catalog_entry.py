"""Catalog entry model -- the internal, sellable record."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Text, ForeignKey, Boolean, Integer, Float, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from catalog_sync.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

STATUS_UNPUBLISHED = "unpublished"
STATUS_PUBLISHED = "published"


class CatalogEntry(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Catalog entry promoted from an external resource.

    Each entry is uniquely identified by its (source_type, source_url) pair,
    the source identity used to keep publishing idempotent.
    """

    __tablename__ = "catalog_entries"

    # Titles
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Media
    cover_image: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    local_image_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Classification
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    author_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("authors.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Commercial / technical facts
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    size_gb: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    language: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    subtitle_languages: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    resolution: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Long-form content
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contents: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Outline JSON")

    # Access
    resource_url: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    resource_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Source identity
    source_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    source_url: Mapped[str] = mapped_column(String(2000), nullable=False, index=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_UNPUBLISHED,
        comment="Status: 'unpublished' or 'published'",
    )
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("source_type", "source_url", name="uq_catalog_entry_source"),
    )

    def __repr__(self) -> str:
        return f"<CatalogEntry(id={self.id}, title='{self.title[:50]}', status='{self.status}')>"
