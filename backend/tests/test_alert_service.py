"""Tests for pending-alert dispatch."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List

import pytest_asyncio
from sqlalchemy import select

from pricewatch.models import PriceAlert
from pricewatch.services.alert_service import AlertNotification, AlertService, LogAlertDispatcher


class RecordingDispatcher:
    def __init__(self, fail_on_new_price=None):
        self.fail_on_new_price = fail_on_new_price
        self.sent: List[AlertNotification] = []

    async def send_price_drop(self, notification: AlertNotification) -> None:
        if notification.new_price == self.fail_on_new_price:
            raise ConnectionError("smtp unavailable")
        self.sent.append(notification)


@pytest_asyncio.fixture
async def alert_factory(session_factory, product_factory, sample_user):
    product = await product_factory(title="Espresso Machine")
    base_time = datetime(2026, 1, 1, tzinfo=timezone.utc)

    async def create(new_price: str, minutes: int = 0, email_sent: bool = False) -> PriceAlert:
        async with session_factory() as db:
            alert = PriceAlert(
                user_id=sample_user.id,
                product_id=product.id,
                old_price=Decimal("199.00"),
                new_price=Decimal(new_price),
                email_sent=email_sent,
                created_at=base_time + timedelta(minutes=minutes),
            )
            db.add(alert)
            await db.commit()
            return alert

    return create


async def sent_flags(session_factory):
    async with session_factory() as db:
        rows = (await db.execute(select(PriceAlert).order_by(PriceAlert.created_at))).scalars().all()
        return [(str(row.new_price), row.email_sent, row.sent_at is not None) for row in rows]


class TestDispatchPending:

    async def test_dispatches_unsent_oldest_first(self, session_factory, alert_factory):
        await alert_factory("150.00", minutes=10)
        await alert_factory("140.00", minutes=0)
        await alert_factory("100.00", minutes=5, email_sent=True)
        dispatcher = RecordingDispatcher()

        stats = await AlertService(session_factory).dispatch_pending(dispatcher)

        assert stats["total"] == 2
        assert stats["sent"] == 2
        assert stats["failed"] == 0
        assert [n.new_price for n in dispatcher.sent] == [Decimal("140.00"), Decimal("150.00")]
        assert all(flag for _, flag, _ in await sent_flags(session_factory))

    async def test_notification_payload(self, session_factory, alert_factory, sample_user):
        await alert_factory("149.00")
        dispatcher = RecordingDispatcher()

        await AlertService(session_factory).dispatch_pending(dispatcher)

        notification = dispatcher.sent[0]
        assert notification.recipient == sample_user.email
        assert notification.product.title == "Espresso Machine"
        assert notification.product.currency == "USD"
        assert notification.old_price == Decimal("199.00")
        assert notification.new_price == Decimal("149.00")

    async def test_failed_delivery_stays_pending(self, session_factory, alert_factory):
        await alert_factory("150.00", minutes=0)
        await alert_factory("140.00", minutes=1)
        dispatcher = RecordingDispatcher(fail_on_new_price=Decimal("150.00"))

        stats = await AlertService(session_factory).dispatch_pending(dispatcher)

        assert (stats["total"], stats["sent"], stats["failed"]) == (2, 1, 1)
        assert await sent_flags(session_factory) == [
            ("150.00", False, False),
            ("140.00", True, True),
        ]

    async def test_limit(self, session_factory, alert_factory):
        for minute in range(5):
            await alert_factory(f"{100 + minute}.00", minutes=minute)

        stats = await AlertService(session_factory).dispatch_pending(RecordingDispatcher(), limit=3)

        assert stats["sent"] == 3
        flags = await sent_flags(session_factory)
        assert [sent for _, sent, _ in flags] == [True, True, True, False, False]

    async def test_nothing_pending(self, session_factory):
        stats = await AlertService(session_factory).dispatch_pending(LogAlertDispatcher())

        assert (stats["total"], stats["sent"], stats["failed"]) == (0, 0, 0)
        assert "duration_seconds" in stats
