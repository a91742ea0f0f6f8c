"""Health check endpoint."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pricewatch.config import Settings
from pricewatch.dependencies import get_db, get_settings
from pricewatch.schemas import HealthCheckResponse
from pricewatch.services.health_service import HealthService

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    """Report whether price sweeps are still running.

    ``healthy`` when a product was checked within HEALTH_STALE_HOURS,
    ``warning`` otherwise (including when nothing was ever checked).
    """
    service = HealthService(db, stale_after_hours=config.HEALTH_STALE_HOURS)
    try:
        report = await service.get_report()
    except SQLAlchemyError as e:
        logger.error("health_check_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to query database",
        )
    return HealthCheckResponse(**report)
