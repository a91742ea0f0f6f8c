"""Product scraping subsystem.

Fetch layer -> extraction engine -> normalizer, wrapped by the retry
controller and driven by the sweep service.
"""

from pricewatch.scrapers.base import (
    BatchRunSummary,
    RawContent,
    ScrapedProduct,
    ScrapeOutcome,
    ScrapeTarget,
    SweepFailure,
)
from pricewatch.scrapers.policy import ScrapePolicy

__all__ = [
    "BatchRunSummary",
    "RawContent",
    "ScrapedProduct",
    "ScrapeOutcome",
    "ScrapeTarget",
    "SweepFailure",
    "ScrapePolicy",
]
