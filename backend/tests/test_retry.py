"""Tests for the retry controller and the single-attempt scraper."""

import random
from decimal import Decimal

import httpx
import pytest

from pricewatch.core.exceptions import ExtractionError, FetchError, InvalidTargetError
from pricewatch.scrapers.base import ScrapedProduct
from pricewatch.scrapers.fetchers import HttpFetcher
from pricewatch.scrapers.policy import ScrapePolicy
from pricewatch.scrapers.scraper import ProductScraper
from pricewatch.scrapers.utils.retry import RetryController, failure_reason, is_retryable

from conftest import RecordingSleep, make_target

PRODUCT = ScrapedProduct(title="Kettle", price=Decimal("24.99"))


class ScriptedScrape:
    """Scrape function that raises the queued errors in order, then succeeds."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self, target):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return PRODUCT


class TestRetryController:

    async def test_success_on_first_attempt(self, recording_sleep):
        scrape = ScriptedScrape()
        outcome = await RetryController(scrape, ScrapePolicy(), recording_sleep).run(make_target())

        assert outcome.ok
        assert outcome.data is PRODUCT
        assert outcome.attempts == 1
        assert recording_sleep.calls == []

    async def test_linear_backoff_between_attempts(self, recording_sleep):
        scrape = ScriptedScrape(FetchError("HTTP 503: Service Unavailable"), FetchError("HTTP 503: Service Unavailable"))

        outcome = await RetryController(scrape, ScrapePolicy(), recording_sleep).run(make_target())

        assert outcome.ok
        assert outcome.attempts == 3
        assert scrape.calls == 3
        assert recording_sleep.calls == [2.0, 4.0]

    async def test_exhaustion_keeps_only_last_reason(self, recording_sleep):
        scrape = ScriptedScrape(
            FetchError("first"), ExtractionError("second"), ExtractionError("price not found")
        )

        outcome = await RetryController(scrape, ScrapePolicy(), recording_sleep).run(make_target())

        assert not outcome.ok
        assert outcome.reason == "price not found"
        assert outcome.attempts == 3
        assert outcome.data is None
        # No wait after the final attempt
        assert recording_sleep.calls == [2.0, 4.0]

    async def test_non_retryable_error_stops_immediately(self, recording_sleep):
        scrape = ScriptedScrape(InvalidTargetError("not a url"))

        outcome = await RetryController(scrape, ScrapePolicy(), recording_sleep).run(make_target())

        assert not outcome.ok
        assert outcome.attempts == 1
        assert scrape.calls == 1
        assert outcome.reason == "Invalid product URL: 'not a url'"
        assert recording_sleep.calls == []

    async def test_unexpected_exception_becomes_failure(self, recording_sleep):
        scrape = ScriptedScrape(RuntimeError("boom"), RuntimeError("boom"), RuntimeError("boom"))

        outcome = await RetryController(scrape, ScrapePolicy(), recording_sleep).run(make_target())

        assert not outcome.ok
        assert outcome.reason == "boom"
        assert outcome.attempts == 3

    async def test_backoff_scales_with_base(self, recording_sleep):
        policy = ScrapePolicy(max_attempts=4, base_backoff_ms=100)
        scrape = ScriptedScrape(FetchError("a"), FetchError("b"), FetchError("c"), FetchError("d"))

        outcome = await RetryController(scrape, policy, recording_sleep).run(make_target())

        assert outcome.attempts == 4
        assert recording_sleep.calls == pytest.approx([0.1, 0.2, 0.3])

    async def test_single_attempt_policy(self, recording_sleep):
        scrape = ScriptedScrape(FetchError("down"))

        outcome = await RetryController(scrape, ScrapePolicy(max_attempts=1), recording_sleep).run(make_target())

        assert outcome.attempts == 1
        assert recording_sleep.calls == []


class TestRetryHelpers:

    def test_is_retryable(self):
        assert is_retryable(FetchError("x")) is True
        assert is_retryable(ExtractionError("x")) is True
        assert is_retryable(InvalidTargetError("x")) is False
        assert is_retryable(ValueError("x")) is True

    def test_failure_reason_falls_back_to_type_name(self):
        assert failure_reason(RuntimeError()) == "RuntimeError"
        assert failure_reason(FetchError("HTTP 404: Not Found")) == "HTTP 404: Not Found"

    def test_policy_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            ScrapePolicy(max_attempts=0)

    def test_policy_rejects_inverted_delay_range(self):
        with pytest.raises(ValueError):
            ScrapePolicy(pre_fetch_delay_min_ms=2000, pre_fetch_delay_max_ms=1000)


class TestProductScraperWithRetries:

    async def test_recovers_from_transient_status(self, fast_policy, recording_sleep):
        statuses = iter([503, 200])
        html = (
            "<html><body><span id='productTitle'>Kettle</span>"
            "<span class='a-price-whole'>24</span></body></html>"
        )
        fetcher = HttpFetcher(
            policy=fast_policy,
            rng=random.Random(1),
            sleep=recording_sleep,
            transport=httpx.MockTransport(lambda request: httpx.Response(next(statuses), text=html)),
        )
        controller = RetryController(ProductScraper(fetcher).scrape, fast_policy, recording_sleep)

        outcome = await controller.run(make_target())

        assert outcome.ok
        assert outcome.attempts == 2
        assert outcome.data.title == "Kettle"
        assert outcome.data.price == Decimal("24")
        # Pre-fetch delays (zero) interleaved with the 2s backoff
        assert 2.0 in recording_sleep.calls

    async def test_extraction_failure_is_reported(self, fast_policy, recording_sleep):
        fetcher = HttpFetcher(
            policy=fast_policy,
            rng=random.Random(1),
            sleep=recording_sleep,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html><h1>Hi</h1></html>")),
        )
        controller = RetryController(ProductScraper(fetcher).scrape, fast_policy, recording_sleep)

        outcome = await controller.run(make_target())

        assert not outcome.ok
        assert outcome.reason == "price not found"
        assert outcome.attempts == 3
