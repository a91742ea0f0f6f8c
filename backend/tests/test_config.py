"""Tests for settings parsing and the derived scrape policy."""

from pricewatch.config import Settings
from pricewatch.scrapers.policy import ScrapePolicy
from pricewatch.scrapers.utils.proxy_manager import ProxyManager


class TestSettings:

    def test_postgres_url_is_made_async(self):
        settings = Settings(DATABASE_URL="postgres://user:pw@db:5432/pricewatch")
        assert settings.DATABASE_URL == "postgresql+asyncpg://user:pw@db:5432/pricewatch"

    def test_postgresql_url_is_made_async(self):
        settings = Settings(DATABASE_URL="postgresql://user:pw@db/pricewatch")
        assert settings.DATABASE_URL == "postgresql+asyncpg://user:pw@db/pricewatch"

    def test_proxy_list(self):
        settings = Settings(PROXY_LIST=" http://a:1 , ,http://b:2")
        assert settings.get_proxy_list() == ["http://a:1", "http://b:2"]
        assert Settings(PROXY_LIST="").get_proxy_list() == []

    def test_default_strategy_is_http(self):
        assert Settings().SCRAPER_STRATEGY == "http"


class TestScrapePolicy:

    def test_defaults(self):
        policy = ScrapePolicy()
        assert policy.max_attempts == 3
        assert policy.base_backoff_ms == 2000
        assert policy.inter_item_delay_ms == 3000
        assert (policy.pre_fetch_delay_min_ms, policy.pre_fetch_delay_max_ms) == (500, 1500)

    def test_from_settings(self):
        settings = Settings(
            SCRAPE_MAX_ATTEMPTS=5,
            SCRAPE_BASE_BACKOFF_MS=100,
            SWEEP_INTER_ITEM_DELAY_MS=0,
            SWEEP_TIME_BUDGET_SECONDS=240,
        )
        policy = ScrapePolicy.from_settings(settings)

        assert policy.max_attempts == 5
        assert policy.base_backoff_ms == 100
        assert policy.inter_item_delay_ms == 0
        assert policy.sweep_time_budget_seconds == 240


class TestProxyManager:

    def test_round_robin(self):
        manager = ProxyManager(["http://a:1", "http://b:2"])
        assert [manager.get_proxy() for _ in range(3)] == ["http://a:1", "http://b:2", "http://a:1"]

    def test_unhealthy_proxy_is_skipped(self):
        manager = ProxyManager(["http://a:1", "http://b:2"])
        for _ in range(3):
            manager.mark_failed("http://a:1")

        assert {manager.get_proxy() for _ in range(4)} == {"http://b:2"}

    def test_empty_pool(self):
        manager = ProxyManager([])
        assert manager.get_proxy() is None
        manager.mark_failed(None)
        manager.mark_success(None)
