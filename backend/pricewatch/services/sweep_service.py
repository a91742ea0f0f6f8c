"""Batch scheduler: one sequential sweep over all tracked products.

Targets are scraped strictly one at a time, in the order given, with a
fixed pause between them. Keeping the outbound request rate to a retailer
low and predictable matters more here than sweep throughput.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Sequence, Tuple

import structlog

from pricewatch.scrapers.base import BatchRunSummary, ScrapedProduct, ScrapeOutcome, ScrapeTarget
from pricewatch.scrapers.policy import ScrapePolicy
from pricewatch.scrapers.utils.retry import RetryController, failure_reason
from pricewatch.services.price_store import PriceDropEvent, PriceStore

logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


def evaluate_price_drop(target: ScrapeTarget, product: ScrapedProduct) -> Optional[PriceDropEvent]:
    """Return a PriceDropEvent if the new price is strictly below the target price."""
    if target.target_price is None or product.price >= target.target_price:
        return None
    return PriceDropEvent(
        product_id=target.target_id,
        user_id=target.user_id,
        old_price=target.current_price if target.current_price is not None else product.price,
        new_price=product.price,
        target_price=target.target_price,
    )


class PriceSweeper:
    """Runs the retry controller over every target and aggregates a summary.

    One target's failure (scrape, storage, or anything unexpected) is
    recorded and the sweep moves on; nothing aborts the loop except the
    optional time budget.
    """

    def __init__(
        self,
        controller: RetryController,
        store: PriceStore,
        policy: Optional[ScrapePolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.controller = controller
        self.store = store
        self.policy = policy or ScrapePolicy()
        self.sleep = sleep
        self.clock = clock
        self.logger = logger.bind(service="price_sweeper")

    async def run_sweep(self, targets: Sequence[ScrapeTarget]) -> BatchRunSummary:
        """Scrape and persist every target in order.

        Args:
            targets: Targets in processing order (stalest first recommended)

        Returns:
            BatchRunSummary; partial (``truncated``) if the time budget ran out
        """
        started = self.clock()
        summary = BatchRunSummary(total=len(targets), started_at=datetime.now(timezone.utc))
        budget = self.policy.sweep_time_budget_seconds
        delay_seconds = self.policy.inter_item_delay_ms / 1000.0

        self.logger.info("sweep_started", total=summary.total)

        for index, target in enumerate(targets):
            if budget and self.clock() - started >= budget:
                summary.truncated = True
                summary.skipped = summary.total - index
                self.logger.warning(
                    "sweep_time_budget_exhausted",
                    processed=index,
                    skipped=summary.skipped,
                    budget_seconds=budget,
                )
                break

            self.logger.info(
                "sweep_item_started",
                position=index + 1,
                total=summary.total,
                target_id=target.target_id,
            )
            await self._process_target(target, summary)

            if index < len(targets) - 1:
                await self.sleep(delay_seconds)

        summary.duration_seconds = self.clock() - started
        self.logger.info(
            "sweep_completed",
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
            truncated=summary.truncated,
            duration_seconds=round(summary.duration_seconds, 2),
        )
        return summary

    async def _process_target(
        self, target: ScrapeTarget, summary: BatchRunSummary
    ) -> Optional[ScrapeOutcome]:
        try:
            outcome = await self.controller.run(target)
        except Exception as e:
            self.logger.error(
                "sweep_item_crashed",
                target_id=target.target_id,
                error=str(e),
                exc_info=True,
            )
            summary.record_failure(target.target_id, failure_reason(e))
            return None

        if not outcome.ok:
            summary.record_failure(target.target_id, outcome.reason or "Unknown error")
            return outcome

        product = outcome.data
        try:
            await self.store.save_scrape(target, product)
            event = evaluate_price_drop(target, product)
            if event is not None:
                await self.store.create_alert(event)
        except Exception as e:
            # Scrape succeeded but persisting it did not
            self.logger.error(
                "sweep_item_storage_failed",
                target_id=target.target_id,
                error=str(e),
                exc_info=True,
            )
            summary.record_failure(target.target_id, f"Database update failed: {failure_reason(e)}")
            return outcome

        summary.record_success()
        self.logger.info(
            "sweep_item_succeeded",
            target_id=target.target_id,
            price=str(product.price),
            currency=product.currency,
            attempts=outcome.attempts,
        )
        return outcome

    async def refresh_one(self, target: ScrapeTarget) -> Tuple[BatchRunSummary, Optional[ScrapeOutcome]]:
        """Scrape and persist a single target outside of a sweep.

        Uses the same failure handling as a sweep item, so a manual refresh
        never raises for scrape or storage problems.
        """
        started = self.clock()
        summary = BatchRunSummary(total=1, started_at=datetime.now(timezone.utc))
        outcome = await self._process_target(target, summary)
        summary.duration_seconds = self.clock() - started
        return summary, outcome
