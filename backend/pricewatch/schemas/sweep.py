"""Sweep and alert-job response schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from pricewatch.scrapers.base import BatchRunSummary


class SweepFailureResponse(BaseModel):
    target_id: str
    reason: str


class SweepSummaryResponse(BaseModel):
    """Result of one price-check sweep.

    ``errors`` is left out of the payload when nothing failed.
    """

    message: str = "Price check completed"
    total: int
    succeeded: int
    failed: int
    skipped: int = 0
    truncated: bool = False
    duration_seconds: float
    started_at: Optional[datetime] = None
    errors: Optional[List[SweepFailureResponse]] = None

    @classmethod
    def from_summary(cls, summary: BatchRunSummary) -> "SweepSummaryResponse":
        return cls(**summary.to_dict())


class AlertDispatchResponse(BaseModel):
    """Counters from one alert-dispatch batch."""

    message: str = "Alert dispatch completed"
    total: int
    sent: int
    failed: int
    duration_seconds: float
