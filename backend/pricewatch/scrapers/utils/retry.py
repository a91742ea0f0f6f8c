"""Retry controller: bounded retries with linear backoff around one scrape.

The wait after attempt ``n`` is ``n * base_backoff_ms`` (2s, 4s, 6s with the
defaults). Retailer rate-limit windows were tuned against that cadence, so
it is deliberately not a ``2 ** n`` schedule.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from pricewatch.scrapers.base import ScrapedProduct, ScrapeOutcome, ScrapeTarget
from pricewatch.scrapers.policy import ScrapePolicy

logger = structlog.get_logger(__name__)

ScrapeFunc = Callable[[ScrapeTarget], Awaitable[ScrapedProduct]]
SleepFunc = Callable[[float], Awaitable[None]]


def linear_backoff(base_seconds: float) -> Callable[[RetryCallState], float]:
    """tenacity wait strategy: attempt_number * base_seconds."""

    def wait(retry_state: RetryCallState) -> float:
        return retry_state.attempt_number * base_seconds

    return wait


def is_retryable(exc: BaseException) -> bool:
    """Everything is retried unless the error says otherwise."""
    return getattr(exc, "retryable", True)


def failure_reason(exc: BaseException) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message or type(exc).__name__


class RetryController:
    """Wraps a scrape function in a bounded retry loop.

    Never raises: every terminal state, including unexpected exceptions,
    comes back as a ScrapeOutcome. Only the last attempt's failure reason
    is kept.
    """

    def __init__(
        self,
        scrape: ScrapeFunc,
        policy: Optional[ScrapePolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.scrape = scrape
        self.policy = policy or ScrapePolicy()
        self.sleep = sleep

    async def run(self, target: ScrapeTarget) -> ScrapeOutcome:
        """Scrape ``target`` with up to ``policy.max_attempts`` attempts."""
        log = logger.bind(target_id=target.target_id)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=linear_backoff(self.policy.base_backoff_ms / 1000.0),
            retry=retry_if_exception(is_retryable),
            before_sleep=self._log_before_retry(target),
            sleep=self.sleep,
            reraise=True,
        )

        attempts = 0
        product = None
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    product = await self.scrape(target)
        except Exception as e:
            reason = failure_reason(e)
            log.error(
                "scrape_failed",
                attempts=attempts,
                max_attempts=self.policy.max_attempts,
                retryable=is_retryable(e),
                reason=reason,
            )
            return ScrapeOutcome.failure(reason, attempts=attempts)

        log.info("scrape_succeeded", attempts=attempts)
        return ScrapeOutcome.success(product, attempts=attempts)

    def _log_before_retry(self, target: ScrapeTarget) -> Callable[[RetryCallState], None]:
        def log_retry(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "scrape_attempt_failed",
                target_id=target.target_id,
                attempt=retry_state.attempt_number,
                max_attempts=self.policy.max_attempts,
                reason=failure_reason(exc) if exc else None,
                retry_in_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            )

        return log_retry
