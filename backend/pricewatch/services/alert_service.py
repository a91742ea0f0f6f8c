"""Alert dispatch: hands pending price-drop alerts to a delivery collaborator.

The sweep only writes alert rows. Delivering them (email or otherwise)
is the dispatcher's job; this service picks unsent alerts, passes them
on and marks the ones that went out.
"""

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional, Protocol

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from pricewatch.models.price_alert import PriceAlert
from pricewatch.models.product import TrackedProduct

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProductSummary:
    """What a notification needs to describe the product."""

    product_id: str
    title: str
    url: str
    currency: str
    image_url: Optional[str] = None


@dataclass(frozen=True)
class AlertNotification:
    """Payload handed to an AlertDispatcher."""

    alert_id: str
    recipient: str
    product: ProductSummary
    old_price: Decimal
    new_price: Decimal


class AlertDispatcher(Protocol):
    async def send_price_drop(self, notification: AlertNotification) -> None:
        """Deliver one notification; raise on failure."""
        ...


class LogAlertDispatcher:
    """Dispatcher that only logs. Used until a real delivery channel is configured."""

    def __init__(self):
        self.logger = logger.bind(dispatcher="log")

    async def send_price_drop(self, notification: AlertNotification) -> None:
        self.logger.info(
            "price_drop_notification",
            alert_id=notification.alert_id,
            recipient=notification.recipient,
            product_title=notification.product.title[:80],
            old_price=str(notification.old_price),
            new_price=str(notification.new_price),
            currency=notification.product.currency,
        )


class AlertService:
    """Selects unsent alerts and dispatches them in creation order."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.logger = logger.bind(service="alert_service")

    async def dispatch_pending(
        self, dispatcher: AlertDispatcher, limit: int = 20
    ) -> Dict[str, float]:
        """Dispatch up to ``limit`` unsent alerts.

        A failed delivery leaves the alert unsent for the next run and does
        not stop the batch.

        Returns:
            Dict with total, sent, failed and duration_seconds
        """
        started = time.monotonic()
        stats = {"total": 0, "sent": 0, "failed": 0}

        async with self.session_factory() as db:
            result = await db.execute(
                select(PriceAlert)
                .options(
                    selectinload(PriceAlert.product),
                    selectinload(PriceAlert.user),
                )
                .where(PriceAlert.email_sent == False)  # noqa: E712
                .order_by(PriceAlert.created_at.asc())
                .limit(limit)
            )
            alerts = list(result.scalars().all())
            notifications = [self._to_notification(alert) for alert in alerts]
            stats["total"] = len(notifications)

            for notification in notifications:
                try:
                    await dispatcher.send_price_drop(notification)
                except Exception as e:
                    stats["failed"] += 1
                    self.logger.error(
                        "alert_dispatch_failed",
                        alert_id=notification.alert_id,
                        recipient=notification.recipient,
                        error=str(e),
                    )
                    continue

                try:
                    await db.execute(
                        update(PriceAlert)
                        .where(PriceAlert.id == uuid.UUID(notification.alert_id))
                        .values(email_sent=True, sent_at=datetime.now(timezone.utc))
                    )
                    await db.commit()
                except SQLAlchemyError as e:
                    await db.rollback()
                    stats["failed"] += 1
                    self.logger.error(
                        "alert_mark_sent_failed",
                        alert_id=notification.alert_id,
                        error=str(e),
                    )
                    continue

                stats["sent"] += 1

        stats["duration_seconds"] = round(time.monotonic() - started, 2)
        self.logger.info("alert_dispatch_completed", **stats)
        return stats

    @staticmethod
    def _to_notification(alert: PriceAlert) -> AlertNotification:
        product: TrackedProduct = alert.product
        return AlertNotification(
            alert_id=str(alert.id),
            recipient=alert.user.email,
            product=ProductSummary(
                product_id=str(product.id),
                title=product.title or product.url,
                url=product.url,
                currency=product.currency,
                image_url=product.image_url,
            ),
            old_price=alert.old_price,
            new_price=alert.new_price,
        )
