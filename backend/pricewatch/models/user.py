"""User model.

Accounts and sessions are owned by the external identity provider; this
table only mirrors what the alert job needs to address a notification.
"""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricewatch.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from pricewatch.models.product import TrackedProduct


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Owner of tracked products and recipient of price-drop alerts."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)

    products: Mapped[list["TrackedProduct"]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
