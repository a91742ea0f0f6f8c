"""Pydantic schemas for the PriceWatch API."""

from pricewatch.schemas.health import HealthCheckResponse, LastSweepInfo
from pricewatch.schemas.scrape import ScrapedProductResponse, ScrapeResponse
from pricewatch.schemas.sweep import AlertDispatchResponse, SweepFailureResponse, SweepSummaryResponse

__all__ = [
    # Health
    "HealthCheckResponse",
    "LastSweepInfo",
    # Scrape
    "ScrapedProductResponse",
    "ScrapeResponse",
    # Sweep
    "AlertDispatchResponse",
    "SweepFailureResponse",
    "SweepSummaryResponse",
]
