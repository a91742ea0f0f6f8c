"""Core data structures shared by the fetch, extraction, retry and sweep layers."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


@dataclass(frozen=True)
class ScrapeTarget:
    """One tracked product URL plus the tracking context the sweep needs."""

    target_id: str
    url: str
    user_id: Optional[uuid.UUID] = None
    target_price: Optional[Decimal] = None  # Alert threshold set by the owner
    current_price: Optional[Decimal] = None  # Last stored price
    original_price: Optional[Decimal] = None  # First price ever seen


@dataclass
class ScrapedProduct:
    """Structured result of a successful scrape."""

    title: str
    price: Decimal
    currency: str = "USD"
    image_url: Optional[str] = None
    availability: bool = True

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.title or not self.title.strip():
            raise ValueError("title is required")
        if self.price is None or self.price <= 0:
            raise ValueError("price must be a positive Decimal")


@dataclass(frozen=True)
class RawContent:
    """Fetched page handed to the extraction engine.

    Both fetch strategies produce HTML; ``rendered`` is True when the
    markup is a live DOM snapshot from a headless browser.
    """

    target: ScrapeTarget
    html: str
    final_url: str
    status_code: Optional[int] = None
    rendered: bool = False


@dataclass(frozen=True)
class ScrapeOutcome:
    """Terminal result of one retry loop: success with data, or failure with reason."""

    kind: str
    data: Optional[ScrapedProduct] = None
    reason: Optional[str] = None
    attempts: int = 1

    @classmethod
    def success(cls, data: ScrapedProduct, attempts: int = 1) -> "ScrapeOutcome":
        return cls(kind="success", data=data, attempts=attempts)

    @classmethod
    def failure(cls, reason: str, attempts: int = 1) -> "ScrapeOutcome":
        return cls(kind="failure", reason=reason, attempts=attempts)

    @property
    def ok(self) -> bool:
        return self.kind == "success"


@dataclass(frozen=True)
class SweepFailure:
    """One failed target in a sweep."""

    target_id: str
    reason: str


@dataclass
class BatchRunSummary:
    """Aggregate result of one sweep over all eligible targets."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0  # Not started because the sweep ran out of time
    truncated: bool = False
    duration_seconds: float = 0.0
    started_at: Optional[datetime] = None
    failures: List[SweepFailure] = field(default_factory=list)

    def record_success(self) -> None:
        self.succeeded += 1

    def record_failure(self, target_id: str, reason: str) -> None:
        self.failed += 1
        self.failures.append(SweepFailure(target_id=target_id, reason=reason))

    def to_dict(self) -> dict:
        """Serialize for API responses and run records.

        ``errors`` is omitted when the sweep had no failures.
        """
        data = {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "truncated": self.truncated,
            "duration_seconds": round(self.duration_seconds, 2),
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }
        if self.failures:
            data["errors"] = [
                {"target_id": f.target_id, "reason": f.reason} for f in self.failures
            ]
        return data
