"""Item Shop API -- FastAPI Application Entry Point."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from itemshop import __version__
from itemshop.api.v1.router import api_v1_router
from itemshop.config import settings
from itemshop.scrapers.scheduler import ScrapeScheduler
from itemshop.scrapers.scraper_service import get_scraper_service
from itemshop.scrapers.utils.browser_manager import get_browser_manager
from itemshop.services.catalog_store import get_catalog_store

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("Starting Item Shop API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    app.state.started_at = time.monotonic()
    app.state.scheduler = None

    snapshot = get_catalog_store().load()
    if snapshot:
        logger.info(f"Loaded snapshot with {snapshot.total_products} products")
    else:
        logger.warning("No snapshot on disk; data will be available after the first scrape")

    # Start scrape scheduler (only in non-test environments)
    if settings.ENVIRONMENT != "test":
        scheduler = ScrapeScheduler(
            get_scraper_service(),
            cron=settings.SCRAPE_CRON,
            timezone=settings.SCRAPE_TIMEZONE,
        )
        scheduler.start()
        try:
            scheduler.add_scrape_job()
            logger.info(f"Scrape scheduled with cron '{settings.SCRAPE_CRON}' ({settings.SCRAPE_TIMEZONE})")
        except ValueError as e:
            logger.error(f"Invalid SCRAPE_CRON, scheduled scraping disabled: {e}")
        app.state.scheduler = scheduler
    else:
        logger.info("Scheduler disabled (test environment)")

    yield

    # Shutdown
    logger.info("Shutting down Item Shop API server...")

    if app.state.scheduler:
        logger.info("Stopping scrape scheduler...")
        app.state.scheduler.stop()

    # Stop browser manager (closes Playwright)
    try:
        await get_browser_manager().stop()
        logger.info("Browser manager stopped")
    except Exception as e:
        logger.warning(f"Error stopping browser manager: {e}")


app = FastAPI(
    title="Item Shop API",
    description="Daily snapshot of the game item shop catalog",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=settings.FRONTEND_URL != "*",
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Item Shop API",
        "version": __version__,
        "description": "Item shop catalog with offer ids, prices and discounts",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
        "schedule": {"cron": settings.SCRAPE_CRON, "timezone": settings.SCRAPE_TIMEZONE},
        "endpoints": {
            "catalog": "GET /api/v1/item-shop",
            "clean": "GET /api/v1/item-shop/clean",
            "categories": "GET /api/v1/item-shop/categories",
            "category": "GET /api/v1/item-shop/categories/{name}",
            "search": "GET /api/v1/item-shop/search?q=",
            "stats": "GET /api/v1/item-shop/stats",
            "update": "POST /api/v1/item-shop/update",
        },
    }
