"""Playwright browser lifecycle with anti-detection.

Every call to ``open_page`` launches a fresh browser and tears it down on
exit, so no browser state is shared between scrape attempts or targets.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import structlog
from playwright.async_api import Page, Route, async_playwright

logger = structlog.get_logger(__name__)


# Sub-resources that are never needed to read a product page
BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class BrowserManager:
    """Launches short-lived headless Chromium pages configured for scraping.

    Each page gets:
    - the caller's user agent and navigation headers
    - optional proxy
    - stealth JS injection to mask automation signals
    - image/stylesheet/font/media blocking for speed
    """

    def __init__(self, headless: bool = True, block_resources: bool = True):
        self._headless = headless
        self._block_resources = block_resources

    @asynccontextmanager
    async def open_page(
        self,
        user_agent: str,
        extra_headers: Optional[Dict[str, str]] = None,
        proxy_url: Optional[str] = None,
    ) -> AsyncIterator[Page]:
        """Yield a ready page; browser and driver are closed on every exit path."""
        playwright = await async_playwright().start()
        browser = None
        try:
            browser = await playwright.chromium.launch(
                headless=self._headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                    "--disable-gpu",
                ],
            )
            context = await browser.new_context(
                user_agent=user_agent,
                viewport={"width": 1920, "height": 1080},
                locale="en-US",
                extra_http_headers=extra_headers or {},
                proxy={"server": proxy_url} if proxy_url else None,
                java_script_enabled=True,
            )
            await context.add_init_script(STEALTH_JS)

            if self._block_resources:
                await context.route("**/*", _block_heavy_resources)

            page = await context.new_page()
            logger.debug("browser_page_opened", has_proxy=bool(proxy_url))
            yield page
        finally:
            if browser is not None:
                try:
                    await browser.close()
                except Exception as e:
                    logger.warning("browser_close_failed", error=str(e))
            await playwright.stop()
            logger.debug("browser_page_released")


# Minimal stealth JS to mask automation signals
STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) =>
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters);
"""
