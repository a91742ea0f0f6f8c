"""Fetch layer: turns a ScrapeTarget into RawContent.

Two interchangeable strategies share one contract:
- HttpFetcher: plain GET with httpx, static HTML only
- BrowserFetcher: Playwright navigation, returns the rendered DOM
"""

import asyncio
import random
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

import httpx
import structlog
from playwright.async_api import Error as PlaywrightError

from pricewatch.core.exceptions import FetchError, InvalidTargetError
from pricewatch.scrapers.base import RawContent, ScrapeTarget
from pricewatch.scrapers.policy import ScrapePolicy
from pricewatch.scrapers.utils.browser_manager import BrowserManager
from pricewatch.scrapers.utils.proxy_manager import NoProxyManager, ProxyManager
from pricewatch.scrapers.utils.user_agents import build_browser_headers, get_random_user_agent

logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


def validate_target_url(url: str) -> None:
    """Raise InvalidTargetError unless ``url`` is an absolute http(s) URL."""
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidTargetError(url)


class Fetcher(ABC):
    """Base class for fetch strategies.

    ``fetch`` validates the target, waits a randomized pre-fetch delay,
    picks a fresh user agent and proxy, then hands off to ``_fetch``.
    """

    strategy: str = ""

    def __init__(
        self,
        policy: Optional[ScrapePolicy] = None,
        rng: Optional[random.Random] = None,
        sleep: SleepFunc = asyncio.sleep,
        proxy_manager: Optional[ProxyManager] = None,
    ):
        self.policy = policy or ScrapePolicy()
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.proxy_manager = proxy_manager or NoProxyManager()
        self.logger = logger.bind(strategy=self.strategy)

    async def fetch(self, target: ScrapeTarget) -> RawContent:
        """Fetch one product page.

        Raises:
            InvalidTargetError: If the URL is malformed (not retryable)
            FetchError: On transport errors, timeouts and non-2xx status
        """
        validate_target_url(target.url)

        await self.sleep(self._pre_fetch_delay())

        user_agent = get_random_user_agent(self.rng)
        proxy_url = self.proxy_manager.get_proxy()

        self.logger.info("fetching_url", target_id=target.target_id, url=target.url)
        try:
            content = await self._fetch(target, user_agent, proxy_url)
        except FetchError:
            self.proxy_manager.mark_failed(proxy_url)
            raise

        self.proxy_manager.mark_success(proxy_url)
        self.logger.debug(
            "fetch_complete",
            target_id=target.target_id,
            status_code=content.status_code,
            bytes=len(content.html),
        )
        return content

    def _pre_fetch_delay(self) -> float:
        low = self.policy.pre_fetch_delay_min_ms
        high = self.policy.pre_fetch_delay_max_ms
        return self.rng.uniform(low, high) / 1000.0

    @abstractmethod
    async def _fetch(
        self, target: ScrapeTarget, user_agent: str, proxy_url: Optional[str]
    ) -> RawContent:
        pass


class HttpFetcher(Fetcher):
    """Static-markup strategy: one GET request, raw HTML back."""

    strategy = "http"

    def __init__(
        self,
        policy: Optional[ScrapePolicy] = None,
        rng: Optional[random.Random] = None,
        sleep: SleepFunc = asyncio.sleep,
        proxy_manager: Optional[ProxyManager] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(policy, rng, sleep, proxy_manager)
        self._transport = transport  # Injected in tests

    async def _fetch(
        self, target: ScrapeTarget, user_agent: str, proxy_url: Optional[str]
    ) -> RawContent:
        client_kwargs = {
            "timeout": self.policy.fetch_timeout_seconds,
            "follow_redirects": True,
            "headers": build_browser_headers(user_agent),
        }
        if self._transport is not None:
            client_kwargs["transport"] = self._transport
        elif proxy_url:
            client_kwargs["proxy"] = proxy_url

        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                response = await client.get(target.url)
        except httpx.TimeoutException as e:
            self.logger.warning("fetch_timeout", target_id=target.target_id, error=str(e))
            raise FetchError(f"Timed out fetching {target.url}") from e
        except httpx.HTTPError as e:
            self.logger.warning("fetch_transport_error", target_id=target.target_id, error=str(e))
            raise FetchError(f"Transport error: {e}") from e

        if not response.is_success:
            self.logger.warning(
                "fetch_bad_status",
                target_id=target.target_id,
                status_code=response.status_code,
            )
            raise FetchError(f"HTTP {response.status_code}: {response.reason_phrase}")

        return RawContent(
            target=target,
            html=response.text,
            final_url=str(response.url),
            status_code=response.status_code,
            rendered=False,
        )


class BrowserFetcher(Fetcher):
    """Rendered-page strategy: headless Chromium, live DOM back."""

    strategy = "browser"

    def __init__(
        self,
        browser_manager: Optional[BrowserManager] = None,
        policy: Optional[ScrapePolicy] = None,
        rng: Optional[random.Random] = None,
        sleep: SleepFunc = asyncio.sleep,
        proxy_manager: Optional[ProxyManager] = None,
    ):
        super().__init__(policy, rng, sleep, proxy_manager)
        self.browser_manager = browser_manager or BrowserManager()

    async def _fetch(
        self, target: ScrapeTarget, user_agent: str, proxy_url: Optional[str]
    ) -> RawContent:
        timeout_ms = self.policy.fetch_timeout_seconds * 1000
        # Playwright sets User-Agent at context level
        headers = build_browser_headers()

        try:
            async with self.browser_manager.open_page(user_agent, headers, proxy_url) as page:
                response = await page.goto(
                    target.url, wait_until="domcontentloaded", timeout=timeout_ms
                )
                if response is not None and not response.ok:
                    raise FetchError(f"HTTP {response.status}: {response.status_text}")
                html = await page.content()
                return RawContent(
                    target=target,
                    html=html,
                    final_url=page.url,
                    status_code=response.status if response is not None else None,
                    rendered=True,
                )
        except PlaywrightError as e:
            self.logger.warning("browser_fetch_failed", target_id=target.target_id, error=str(e))
            raise FetchError(f"Browser navigation failed: {e}") from e


def create_fetcher(
    strategy: str,
    policy: Optional[ScrapePolicy] = None,
    rng: Optional[random.Random] = None,
    proxy_manager: Optional[ProxyManager] = None,
    headless: bool = True,
) -> Fetcher:
    """Build the configured fetch strategy.

    Args:
        strategy: 'http' or 'browser'

    Raises:
        ValueError: If the strategy name is unknown
    """
    strategy = (strategy or "").lower()
    if strategy == "http":
        return HttpFetcher(policy=policy, rng=rng, proxy_manager=proxy_manager)
    if strategy == "browser":
        return BrowserFetcher(
            browser_manager=BrowserManager(headless=headless),
            policy=policy,
            rng=rng,
            proxy_manager=proxy_manager,
        )
    raise ValueError(f"Unknown scraper strategy: {strategy!r}")
