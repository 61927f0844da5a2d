"""External category model -- one listing section of the source site."""

from typing import TYPE_CHECKING

from sqlalchemy import String, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_sync.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from catalog_sync.models.external_resource import ExternalResource


class ExternalCategory(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Category discovered in the source site's navigation menu.

    The listing URL is the natural key: re-discovering a URL only refreshes
    its title, the invalid flag is owned by operators.
    """

    __tablename__ = "external_categories"

    title: Mapped[str] = mapped_column(String(300), nullable=False, comment="Menu title, 'Parent-Child' for sub-menus")
    url: Mapped[str] = mapped_column(String(2000), unique=True, index=True, nullable=False, comment="Listing page URL")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_invalid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, comment="Excluded from sweeps and imports")

    resources: Mapped[list["ExternalResource"]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"<ExternalCategory(id={self.id}, title='{self.title}')>"
