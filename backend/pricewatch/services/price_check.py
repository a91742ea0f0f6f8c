"""Sweep entry point: wires the scraping pipeline from settings and runs it.

Callers (the scheduler, the cron route, the CLI) are trusted; this module
does no authorization of its own.
"""

import asyncio
import random
from typing import Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricewatch.config import Settings, settings as default_settings
from pricewatch.core.exceptions import SweepInProgressError
from pricewatch.scrapers.base import BatchRunSummary, ScrapeOutcome, ScrapeTarget
from pricewatch.scrapers.fetchers import Fetcher, create_fetcher
from pricewatch.scrapers.policy import ScrapePolicy
from pricewatch.scrapers.scraper import ProductScraper
from pricewatch.scrapers.utils.proxy_manager import NoProxyManager, ProxyManager
from pricewatch.scrapers.utils.retry import RetryController
from pricewatch.services.price_store import SqlAlchemyPriceStore
from pricewatch.services.sweep_service import PriceSweeper

logger = structlog.get_logger(__name__)


def build_fetcher(config: Settings, policy: ScrapePolicy) -> Fetcher:
    proxy_urls = config.get_proxy_list()
    proxy_manager = ProxyManager(proxy_urls) if proxy_urls else NoProxyManager()
    return create_fetcher(
        config.SCRAPER_STRATEGY,
        policy=policy,
        rng=random.Random(),
        proxy_manager=proxy_manager,
        headless=config.BROWSER_HEADLESS,
    )


def build_sweeper(
    store: SqlAlchemyPriceStore,
    config: Settings,
    fetcher: Optional[Fetcher] = None,
) -> PriceSweeper:
    policy = ScrapePolicy.from_settings(config)
    scraper = ProductScraper(fetcher or build_fetcher(config, policy))
    controller = RetryController(scraper.scrape, policy)
    return PriceSweeper(controller, store, policy)


# Shared by every trigger (scheduler, cron route, CLI) in this process
_sweep_lock = asyncio.Lock()


async def run_price_check(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    config: Optional[Settings] = None,
) -> BatchRunSummary:
    """Run one full sweep over every active product and return its summary.

    Only one sweep runs at a time; a second request fails fast instead of
    scraping and storing the same products twice.

    Raises:
        SweepInProgressError: If another sweep is still running
    """
    if _sweep_lock.locked():
        logger.warning("sweep_already_running")
        raise SweepInProgressError()

    async with _sweep_lock:
        config = config or default_settings
        if session_factory is None:
            from pricewatch.db.session import async_session_factory
            session_factory = async_session_factory

        store = SqlAlchemyPriceStore(session_factory)
        targets = await store.list_sweep_targets()
        if not targets:
            logger.info("no_active_products")

        sweeper = build_sweeper(store, config)
        summary = await sweeper.run_sweep(targets)

        try:
            await store.record_sweep(summary)
        except Exception as e:
            # The summary is still the result; losing the run record is not fatal
            logger.error("sweep_record_failed", error=str(e), exc_info=True)

    return summary


async def refresh_product(
    target: ScrapeTarget,
    session_factory: async_sessionmaker[AsyncSession],
    config: Optional[Settings] = None,
) -> Tuple[BatchRunSummary, Optional[ScrapeOutcome]]:
    """Manually re-scrape one product through the same path a sweep uses."""
    config = config or default_settings
    sweeper = build_sweeper(SqlAlchemyPriceStore(session_factory), config)
    return await sweeper.refresh_one(target)
