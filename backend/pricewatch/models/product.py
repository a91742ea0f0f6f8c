"""Tracked product: one retailer URL watched by one user."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, ForeignKey, Boolean, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricewatch.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from pricewatch.models.user import User
    from pricewatch.models.price_history import PriceHistory
    from pricewatch.models.price_alert import PriceAlert


class TrackedProduct(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Product page whose price is re-scraped on every sweep.

    ``last_checked`` drives sweep ordering: never-checked and stalest
    products are scraped first.
    """

    __tablename__ = "products"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    url: Mapped[str] = mapped_column(String(2000), nullable=False, comment="Product page URL")

    # Product info (refreshed on every successful scrape)
    title: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="USD")

    # Pricing
    current_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    original_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        comment="First price ever scraped"
    )
    target_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        comment="Alert when the price drops below this"
    )

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_checked: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last successful scrape"
    )

    __table_args__ = (
        Index("idx_products_active_checked", "is_active", "last_checked"),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="products")
    price_history: Mapped[list["PriceHistory"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="PriceHistory.checked_at.desc()"
    )
    alerts: Mapped[list["PriceAlert"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<TrackedProduct(id={self.id}, url='{self.url[:50]}', current_price={self.current_price})>"
