"""Sweep liveness report backing the health route."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pricewatch.models.product import TrackedProduct
from pricewatch.models.sweep_run import SweepRun


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class HealthService:
    """Answers "are sweeps still running?" from the products table."""

    def __init__(self, db: AsyncSession, stale_after_hours: float = 7.0):
        self.db = db
        self.stale_after_hours = stale_after_hours

    async def get_report(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Build the health report.

        Healthy means some product was checked less than
        ``stale_after_hours`` ago. No check at all is a warning.
        """
        now = now or datetime.now(timezone.utc)

        result = await self.db.execute(
            select(TrackedProduct.last_checked, TrackedProduct.title)
            .where(TrackedProduct.last_checked.is_not(None))
            .order_by(TrackedProduct.last_checked.desc())
            .limit(1)
        )
        latest = result.first()

        active_count = await self.db.scalar(
            select(func.count()).select_from(TrackedProduct).where(TrackedProduct.is_active == True)  # noqa: E712
        )

        run_result = await self.db.execute(
            select(SweepRun).order_by(SweepRun.completed_at.desc()).limit(1)
        )
        last_run = run_result.scalar_one_or_none()

        last_checked = _as_utc(latest.last_checked) if latest else None
        hours_since = None
        if last_checked is not None:
            hours_since = (now - last_checked).total_seconds() / 3600

        # Threshold applies to the exact age; rounding is for display only
        healthy = hours_since is not None and hours_since < self.stale_after_hours
        if healthy:
            message = "Price checks are running normally"
        elif hours_since is None:
            message = "No products have been checked yet"
        else:
            message = f"Price checks may not be running (last check > {self.stale_after_hours:g} hours ago)"

        return {
            "status": "healthy" if healthy else "warning",
            "timestamp": now,
            "last_checked": last_checked,
            "hours_since_last_check": round(hours_since, 1) if hours_since is not None else None,
            "active_products": active_count or 0,
            "last_checked_product": latest.title if latest else None,
            "last_sweep": self._run_to_dict(last_run) if last_run else None,
            "message": message,
        }

    @staticmethod
    def _run_to_dict(run: SweepRun) -> Dict[str, Any]:
        return {
            "status": run.status,
            "completed_at": _as_utc(run.completed_at) if run.completed_at else None,
            "total": run.total,
            "succeeded": run.succeeded,
            "failed": run.failed,
            "skipped": run.skipped,
            "truncated": run.truncated,
        }
