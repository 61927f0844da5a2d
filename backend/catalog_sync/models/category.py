"""Internal catalog category model."""

from typing import Optional

from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from catalog_sync.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Category(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Category of the internal catalog, the target of category matching."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Display order")
    parent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"
