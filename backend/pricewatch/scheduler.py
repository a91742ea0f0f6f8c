"""APScheduler-based price-check scheduler.

Two interval jobs: the full price sweep and pending-alert dispatch. Both
run inside the API process's event loop.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricewatch.config import Settings, settings as default_settings
from pricewatch.core.exceptions import SweepInProgressError
from pricewatch.scrapers.base import BatchRunSummary
from pricewatch.services.alert_service import AlertDispatcher, AlertService, LogAlertDispatcher
from pricewatch.services.price_check import run_price_check

logger = structlog.get_logger(__name__)

PRICE_CHECK_JOB_ID = "price_check"
ALERT_DISPATCH_JOB_ID = "alert_dispatch"


class PriceCheckScheduler:
    """Owns the AsyncIOScheduler and the two periodic jobs.

    Each job has ``max_instances=1``: a sweep that outlasts its interval
    makes the next tick skip instead of starting a second sweep.
    """

    def __init__(
        self,
        db_session_factory: async_sessionmaker[AsyncSession],
        config: Optional[Settings] = None,
        dispatcher: Optional[AlertDispatcher] = None,
        price_check: Callable[..., Awaitable[BatchRunSummary]] = run_price_check,
    ):
        self.db_session_factory = db_session_factory
        self.config = config or default_settings
        self.dispatcher = dispatcher or LogAlertDispatcher()
        self.price_check = price_check
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="price_check_scheduler")

    def start(self) -> None:
        """Register both jobs and start the scheduler."""
        if self.scheduler.running:
            self.logger.warning("scheduler_already_running")
            return

        self.add_price_check_job(self.config.PRICE_CHECK_INTERVAL_HOURS)
        # Offset so alert dispatch does not fire at the same instant as the sweep
        self.add_alert_dispatch_job(self.config.ALERT_DISPATCH_INTERVAL_MINUTES, offset_seconds=60)
        self.scheduler.start()
        self.logger.info("scheduler_started")

    async def stop(self) -> None:
        """Stop the scheduler.

        AsyncIOScheduler may defer the shutdown onto the event loop, so
        yield once before reporting it stopped.
        """
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            await asyncio.sleep(0)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    def add_price_check_job(self, interval_hours: int) -> Job:
        job = self.scheduler.add_job(
            func=self._run_price_check_wrapper,
            trigger=IntervalTrigger(hours=interval_hours, timezone="UTC"),
            id=PRICE_CHECK_JOB_ID,
            name="Price check sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("price_check_job_added", interval_hours=interval_hours)
        return job

    def add_alert_dispatch_job(self, interval_minutes: int, offset_seconds: int = 0) -> Job:
        job = self.scheduler.add_job(
            func=self._run_alert_dispatch_wrapper,
            trigger=IntervalTrigger(
                minutes=interval_minutes,
                start_date=datetime.now(timezone.utc) + timedelta(seconds=offset_seconds),
                timezone="UTC",
            ),
            id=ALERT_DISPATCH_JOB_ID,
            name="Alert dispatch",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info(
            "alert_dispatch_job_added",
            interval_minutes=interval_minutes,
            offset_seconds=offset_seconds,
        )
        return job

    async def _run_price_check_wrapper(self) -> None:
        """Called by APScheduler. Exceptions are logged, never propagated."""
        try:
            summary = await self.price_check(session_factory=self.db_session_factory, config=self.config)
        except SweepInProgressError:
            # A manually triggered sweep is still running
            self.logger.info("price_check_job_skipped")
            return
        except Exception as e:
            self.logger.error("price_check_job_failed", error=str(e), exc_info=True)
            return
        self.logger.info("price_check_job_completed", **summary.to_dict())

    async def _run_alert_dispatch_wrapper(self) -> None:
        try:
            service = AlertService(self.db_session_factory)
            await service.dispatch_pending(self.dispatcher, limit=self.config.ALERT_BATCH_SIZE)
        except Exception as e:
            self.logger.error("alert_dispatch_job_failed", error=str(e), exc_info=True)

    def get_jobs_status(self) -> Dict[str, dict]:
        """Next run time and trigger for each registered job."""
        jobs = {}
        for job_id in (PRICE_CHECK_JOB_ID, ALERT_DISPATCH_JOB_ID):
            job = self.scheduler.get_job(job_id)
            if job:
                jobs[job_id] = {
                    "next_run": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
                    "trigger": str(job.trigger),
                }
        return jobs

    def is_running(self) -> bool:
        return self.scheduler.running
