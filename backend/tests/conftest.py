"""Pytest configuration and shared fixtures."""

import os

# Must be set before pricewatch.config / pricewatch.db.session are imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["CRON_SECRET"] = "test-cron-secret"

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pricewatch.models import Base, TrackedProduct, User
from pricewatch.scrapers.base import ScrapeTarget
from pricewatch.scrapers.policy import ScrapePolicy


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays and returns at once."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_policy() -> ScrapePolicy:
    """Default retry shape with no pre-fetch jitter."""
    return ScrapePolicy(pre_fetch_delay_min_ms=0, pre_fetch_delay_max_ms=0)


def make_target(index: int = 1, url: Optional[str] = None, **kwargs) -> ScrapeTarget:
    return ScrapeTarget(
        target_id=kwargs.pop("target_id", f"target-{index}"),
        url=url if url is not None else f"https://www.amazon.com/dp/B00000000{index}",
        **kwargs,
    )


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database shared by every session from the factory."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await engine.dispose()


@pytest_asyncio.fixture
async def sample_user(session_factory) -> User:
    async with session_factory() as db:
        user = User(email="shopper@example.com")
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user


@pytest_asyncio.fixture
async def product_factory(session_factory, sample_user) -> Callable:
    """Insert a TrackedProduct owned by sample_user."""

    async def create(
        url: str = "https://www.amazon.com/dp/B000000001",
        title: Optional[str] = "Noise Cancelling Headphones",
        current_price: Optional[Decimal] = None,
        original_price: Optional[Decimal] = None,
        target_price: Optional[Decimal] = None,
        is_active: bool = True,
        last_checked: Optional[datetime] = None,
    ) -> TrackedProduct:
        async with session_factory() as db:
            product = TrackedProduct(
                id=uuid.uuid4(),
                user_id=sample_user.id,
                url=url,
                title=title,
                current_price=current_price,
                original_price=original_price,
                target_price=target_price,
                is_active=is_active,
                last_checked=last_checked,
            )
            db.add(product)
            await db.commit()
            await db.refresh(product)
            return product

    return create
