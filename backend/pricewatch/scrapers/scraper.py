"""One scrape attempt: fetch, extract, normalize."""

from typing import Callable, Optional

import structlog

from pricewatch.scrapers.base import RawContent, ScrapedProduct, ScrapeTarget
from pricewatch.scrapers.extraction import extract_product
from pricewatch.scrapers.fetchers import Fetcher

logger = structlog.get_logger(__name__)


class ProductScraper:
    """Runs the Fetch -> Extract -> Normalize pipeline for a single attempt.

    Errors are raised, not caught: the retry controller decides what to
    do with them.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        extractor: Optional[Callable[[RawContent], ScrapedProduct]] = None,
    ):
        self.fetcher = fetcher
        self.extractor = extractor or extract_product

    async def scrape(self, target: ScrapeTarget) -> ScrapedProduct:
        """Scrape one target once.

        Raises:
            FetchError: If the page cannot be fetched
            ExtractionError: If title or price cannot be extracted
        """
        content = await self.fetcher.fetch(target)
        product = self.extractor(content)
        logger.info(
            "product_scraped",
            target_id=target.target_id,
            strategy=self.fetcher.strategy,
            price=str(product.price),
            currency=product.currency,
        )
        return product
