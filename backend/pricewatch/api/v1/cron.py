"""Scheduled-trigger endpoints.

An external cron (or an operator) hits these with the shared
``CRON_SECRET``; the in-process scheduler calls the same services
directly.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricewatch.config import Settings
from pricewatch.core.exceptions import SweepInProgressError
from pricewatch.dependencies import get_session_factory, get_settings, verify_cron_secret
from pricewatch.schemas import AlertDispatchResponse, SweepSummaryResponse
from pricewatch.services.alert_service import AlertService, LogAlertDispatcher
from pricewatch.services.price_check import run_price_check

router = APIRouter(dependencies=[Depends(verify_cron_secret)])
logger = structlog.get_logger(__name__)


@router.api_route(
    "/check-prices",
    methods=["GET", "POST"],
    response_model=SweepSummaryResponse,
    response_model_exclude_none=True,
)
async def check_prices(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    config: Settings = Depends(get_settings),
):
    """Run one full price-check sweep and return its summary.

    Per-product failures are part of the summary. Returns 409 when a sweep
    is already running and 500 when the sweep could not run at all.
    """
    logger.info("cron_check_prices_triggered")
    try:
        summary = await run_price_check(session_factory=session_factory, config=config)
    except SweepInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception as e:
        logger.error("cron_check_prices_failed", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Price check failed: {e}",
        )
    return SweepSummaryResponse.from_summary(summary)


@router.api_route("/send-alerts", methods=["GET", "POST"], response_model=AlertDispatchResponse)
async def send_alerts(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    config: Settings = Depends(get_settings),
):
    """Dispatch up to ALERT_BATCH_SIZE pending price-drop alerts."""
    service = AlertService(session_factory)
    try:
        stats = await service.dispatch_pending(LogAlertDispatcher(), limit=config.ALERT_BATCH_SIZE)
    except Exception as e:
        logger.error("cron_send_alerts_failed", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Alert dispatch failed: {e}",
        )
    return AlertDispatchResponse(**stats)
