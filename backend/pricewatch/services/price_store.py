"""Storage collaborator for the sweep.

The sweep only depends on the ``PriceStore`` protocol; the SQLAlchemy
implementation below is what production wires in.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricewatch.core.exceptions import NotFoundError, StorageError
from pricewatch.models.price_alert import PriceAlert
from pricewatch.models.price_history import PriceHistory
from pricewatch.models.product import TrackedProduct
from pricewatch.models.sweep_run import SweepRun
from pricewatch.scrapers.base import BatchRunSummary, ScrapedProduct, ScrapeTarget

logger = structlog.get_logger(__name__)


def _fit(value: Optional[str], column) -> Optional[str]:
    """Clip a scraped string to the column's declared length."""
    if value is None:
        return None
    return value[: column.type.length]


@dataclass(frozen=True)
class PriceDropEvent:
    """A new price fell below the owner's target price."""

    product_id: str
    user_id: Optional[uuid.UUID]
    old_price: Decimal
    new_price: Decimal
    target_price: Decimal


class PriceStore(Protocol):
    async def list_sweep_targets(self) -> List[ScrapeTarget]: ...

    async def save_scrape(self, target: ScrapeTarget, product: ScrapedProduct) -> None: ...

    async def create_alert(self, event: PriceDropEvent) -> None: ...

    async def record_sweep(self, summary: BatchRunSummary) -> None: ...


def to_target(product: TrackedProduct) -> ScrapeTarget:
    return ScrapeTarget(
        target_id=str(product.id),
        url=product.url,
        user_id=product.user_id,
        target_price=product.target_price,
        current_price=product.current_price,
        original_price=product.original_price,
    )


class SqlAlchemyPriceStore:
    """PriceStore backed by the products / price_history / alerts tables.

    Every operation runs in its own session so one failed write never
    poisons the next target's transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.logger = logger.bind(service="price_store")

    async def list_sweep_targets(self) -> List[ScrapeTarget]:
        """Active products, never-checked first, then oldest check first."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(TrackedProduct)
                .where(TrackedProduct.is_active == True)  # noqa: E712
                .order_by(TrackedProduct.last_checked.asc().nulls_first(), TrackedProduct.created_at.asc())
            )
            products = list(result.scalars().all())

        self.logger.info("sweep_targets_loaded", count=len(products))
        return [to_target(p) for p in products]

    async def get_target(self, product_id: uuid.UUID) -> ScrapeTarget:
        """Load a single product as a ScrapeTarget.

        Raises:
            NotFoundError: If the product does not exist
        """
        async with self.session_factory() as db:
            product = await db.get(TrackedProduct, product_id)
        if product is None:
            raise NotFoundError("Product", str(product_id))
        return to_target(product)

    async def save_scrape(self, target: ScrapeTarget, product: ScrapedProduct) -> None:
        """Update the product row and append a price-history row atomically.

        Raises:
            StorageError: If the product is gone or the write fails
        """
        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as db:
                row = await db.get(TrackedProduct, uuid.UUID(target.target_id))
                if row is None:
                    raise StorageError(f"Product {target.target_id} no longer exists")

                row.title = _fit(product.title, TrackedProduct.__table__.c.title)
                row.current_price = product.price
                if row.original_price is None:
                    row.original_price = product.price
                row.image_url = _fit(product.image_url, TrackedProduct.__table__.c.image_url)
                row.currency = product.currency
                row.is_available = product.availability
                row.last_checked = now

                db.add(
                    PriceHistory(
                        product_id=row.id,
                        price=product.price,
                        currency=product.currency,
                        checked_at=now,
                    )
                )
                await db.commit()
        except SQLAlchemyError as e:
            self.logger.error("save_scrape_failed", target_id=target.target_id, error=str(e))
            raise StorageError(str(e)) from e

        self.logger.debug("scrape_saved", target_id=target.target_id, price=str(product.price))

    async def create_alert(self, event: PriceDropEvent) -> None:
        """Insert an unsent alert row.

        Raises:
            StorageError: If the write fails
        """
        try:
            async with self.session_factory() as db:
                db.add(
                    PriceAlert(
                        product_id=uuid.UUID(event.product_id),
                        user_id=event.user_id,
                        old_price=event.old_price,
                        new_price=event.new_price,
                        email_sent=False,
                    )
                )
                await db.commit()
        except SQLAlchemyError as e:
            self.logger.error("create_alert_failed", product_id=event.product_id, error=str(e))
            raise StorageError(str(e)) from e

        self.logger.info(
            "price_drop_alert_created",
            product_id=event.product_id,
            old_price=str(event.old_price),
            new_price=str(event.new_price),
            target_price=str(event.target_price),
        )

    async def record_sweep(self, summary: BatchRunSummary) -> None:
        """Persist the finished sweep's summary."""
        completed_at = datetime.now(timezone.utc)
        async with self.session_factory() as db:
            db.add(
                SweepRun(
                    status="truncated" if summary.truncated else "completed",
                    started_at=summary.started_at,
                    completed_at=completed_at,
                    duration_seconds=Decimal(str(round(summary.duration_seconds, 2))),
                    total=summary.total,
                    succeeded=summary.succeeded,
                    failed=summary.failed,
                    skipped=summary.skipped,
                    truncated=summary.truncated,
                    failures=[
                        {"target_id": f.target_id, "reason": f.reason}
                        for f in summary.failures
                    ],
                )
            )
            await db.commit()
