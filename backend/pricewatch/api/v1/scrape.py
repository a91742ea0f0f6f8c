"""Manual single-product refresh."""

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricewatch.config import Settings
from pricewatch.core.exceptions import NotFoundError
from pricewatch.dependencies import get_session_factory, get_settings, verify_cron_secret
from pricewatch.schemas import ScrapedProductResponse, ScrapeResponse
from pricewatch.services.price_check import refresh_product
from pricewatch.services.price_store import SqlAlchemyPriceStore

router = APIRouter(dependencies=[Depends(verify_cron_secret)])
logger = structlog.get_logger(__name__)


@router.post("/{product_id}", response_model=ScrapeResponse)
async def scrape_product(
    product_id: uuid.UUID,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    config: Settings = Depends(get_settings),
):
    """Re-scrape one tracked product now.

    Returns 404 for an unknown product, 502 when the retailer page could
    not be scraped and 500 when the result could not be saved.
    """
    store = SqlAlchemyPriceStore(session_factory)
    try:
        target = await store.get_target(product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    summary, outcome = await refresh_product(target, session_factory, config)

    if outcome is None or not outcome.ok:
        reason = summary.failures[0].reason if summary.failures else "Failed to scrape product"
        logger.warning("manual_scrape_failed", product_id=str(product_id), reason=reason)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=reason)

    if summary.failed:
        logger.error("manual_scrape_save_failed", product_id=str(product_id))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=summary.failures[0].reason,
        )

    return ScrapeResponse(
        product_id=target.target_id,
        attempts=outcome.attempts,
        data=ScrapedProductResponse.from_product(outcome.data),
    )
