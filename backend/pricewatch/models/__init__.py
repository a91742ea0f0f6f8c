"""SQLAlchemy models for PriceWatch.

All models are imported here so they register with Base.metadata.
"""

from pricewatch.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from pricewatch.models.user import User
from pricewatch.models.product import TrackedProduct
from pricewatch.models.price_history import PriceHistory
from pricewatch.models.price_alert import PriceAlert
from pricewatch.models.sweep_run import SweepRun

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
    "TrackedProduct",
    "PriceHistory",
    "PriceAlert",
    "SweepRun",
]
