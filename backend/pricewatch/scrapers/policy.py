"""Tunable timing and retry knobs for the scraping pipeline."""

from dataclasses import dataclass

from pricewatch.config import Settings


@dataclass(frozen=True)
class ScrapePolicy:
    """Explicit configuration passed to fetchers, the retry controller and the sweeper.

    Tests build this directly with zero delays; production builds it
    from environment settings.
    """

    max_attempts: int = 3
    base_backoff_ms: int = 2000  # Wait after attempt n is n * base_backoff_ms
    inter_item_delay_ms: int = 3000
    pre_fetch_delay_min_ms: int = 500
    pre_fetch_delay_max_ms: int = 1500
    fetch_timeout_seconds: float = 30.0
    sweep_time_budget_seconds: float = 0  # 0 = unbounded

    def __post_init__(self):
        """Validate data after initialization."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.pre_fetch_delay_min_ms > self.pre_fetch_delay_max_ms:
            raise ValueError("pre_fetch_delay_min_ms must not exceed pre_fetch_delay_max_ms")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScrapePolicy":
        return cls(
            max_attempts=settings.SCRAPE_MAX_ATTEMPTS,
            base_backoff_ms=settings.SCRAPE_BASE_BACKOFF_MS,
            inter_item_delay_ms=settings.SWEEP_INTER_ITEM_DELAY_MS,
            pre_fetch_delay_min_ms=settings.PRE_FETCH_DELAY_MIN_MS,
            pre_fetch_delay_max_ms=settings.PRE_FETCH_DELAY_MAX_MS,
            fetch_timeout_seconds=settings.FETCH_TIMEOUT_SECONDS,
            sweep_time_budget_seconds=settings.SWEEP_TIME_BUDGET_SECONDS,
        )
