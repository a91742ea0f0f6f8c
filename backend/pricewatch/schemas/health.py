"""Health check schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class LastSweepInfo(BaseModel):
    status: str
    completed_at: Optional[datetime] = None
    total: int
    succeeded: int
    failed: int
    skipped: int
    truncated: bool


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str  # 'healthy' or 'warning'
    timestamp: datetime
    last_checked: Optional[datetime] = None
    hours_since_last_check: Optional[float] = None
    active_products: int
    last_checked_product: Optional[str] = None
    last_sweep: Optional[LastSweepInfo] = None
    message: str
