"""PriceWatch Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from pricewatch import __version__
from pricewatch.api.v1.router import api_v1_router
from pricewatch.config import settings
from pricewatch.db.session import async_session_factory, engine
from pricewatch.models import Base
from pricewatch.scheduler import PriceCheckScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[PriceCheckScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    global scheduler

    logger.info("Starting PriceWatch API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Scraper strategy: {settings.SCRAPER_STRATEGY}")

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables verified/created")
    except Exception as e:
        logger.error(f"Database init failed: {e}", exc_info=True)

    # Start price-check scheduler (only in non-test environments)
    if settings.ENVIRONMENT != "test":
        scheduler = PriceCheckScheduler(async_session_factory)
        scheduler.start()
        logger.info(
            f"Scheduler started: sweep every {settings.PRICE_CHECK_INTERVAL_HOURS}h, "
            f"alerts every {settings.ALERT_DISPATCH_INTERVAL_MINUTES}m"
        )
    else:
        logger.info("Scheduler disabled (test environment)")

    yield

    logger.info("Shutting down PriceWatch API server...")
    if scheduler:
        await scheduler.stop()
        scheduler = None
    await engine.dispose()


app = FastAPI(
    title="PriceWatch API",
    description="Scheduled product price tracking with price-drop alerts",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "PriceWatch API",
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
