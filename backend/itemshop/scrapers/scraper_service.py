"""Scrape orchestration service.

Connects the storefront adapter, the catalog pipeline and the snapshot
store: fetch a page snapshot, build the catalog, persist it.
"""

import asyncio
import time
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import structlog

from itemshop.config import settings
from itemshop.core.exceptions import EmptyCatalogError, ScrapeInProgressError
from itemshop.schemas.catalog import CatalogSnapshot
from itemshop.scrapers.adapters.item_shop import ItemShopAdapter
from itemshop.scrapers.base import BaseScraperAdapter, Catalog, OfferStatus
from itemshop.scrapers.pipeline import build_catalog
from itemshop.scrapers.utils.rate_limiter import DomainRateLimiter
from itemshop.scrapers.utils.retry import scrape_retrying
from itemshop.services.catalog_store import CatalogStore, get_catalog_store

logger = structlog.get_logger(__name__)


class ScraperService:
    """Runs one complete scrape at a time.

    Failed attempts (browser errors, timeouts, empty catalogs) are retried
    with a fixed delay. Only a successful attempt replaces the stored
    snapshot.
    """

    def __init__(
        self,
        store: CatalogStore,
        adapter: Optional[BaseScraperAdapter] = None,
        base_url: Optional[str] = None,
        retries: Optional[int] = None,
        retry_delay_seconds: Optional[float] = None,
    ):
        """Initialize scraper service.

        Args:
            store: Snapshot store updated after each successful run
            adapter: Page source, defaults to the item shop browser adapter
            base_url: Site root for absolutizing product links
            retries: Attempts per run, defaults to SCRAPER_RETRIES
            retry_delay_seconds: Pause between attempts
        """
        self.store = store
        self._adapter = adapter
        self.base_url = base_url or settings.BASE_URL
        self.retries = retries if retries is not None else settings.SCRAPER_RETRIES
        self.retry_delay_seconds = (
            retry_delay_seconds if retry_delay_seconds is not None else settings.SCRAPER_RETRY_DELAY_SECONDS
        )
        self.rate_limiter = DomainRateLimiter()
        self.shop_domain = urlparse(settings.SHOP_URL).netloc
        self.rate_limiter.set_custom_limit(self.shop_domain, settings.STOREFRONT_REQUESTS_PER_MINUTE)
        self._lock = asyncio.Lock()
        self.last_run: Optional[Dict[str, Any]] = None
        self.logger = logger.bind(service="scraper_service")

    @property
    def adapter(self) -> BaseScraperAdapter:
        if self._adapter is None:
            self._adapter = ItemShopAdapter()
        if self._adapter.rate_limiter is None:
            self._adapter.rate_limiter = self.rate_limiter
        return self._adapter

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run(self) -> Dict[str, Any]:
        """Scrape the storefront and store the resulting snapshot.

        Returns:
            Dict with run statistics:
                - products, categories, offer_ids
                - matched, unmatched, duplicates
                - state_entries, attempts, duration_seconds
                - integrity: the validator report, including duplicates

        Raises:
            ScrapeInProgressError: If another run holds the lock
            Exception: The last attempt's error once retries are exhausted
        """
        if self._lock.locked():
            raise ScrapeInProgressError()

        async with self._lock:
            start = time.monotonic()
            attempts = 0
            self.logger.info(
                "scrape_started",
                retries=self.retries,
                requests_per_minute=self.rate_limiter.get_current_rate(self.shop_domain),
            )

            async for attempt in scrape_retrying(self.retries, self.retry_delay_seconds):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    catalog = await self._scrape_once()

            snapshot = CatalogSnapshot.from_catalog(catalog)
            self.store.save(snapshot)

            stats = self._run_stats(catalog, snapshot)
            stats["attempts"] = attempts
            stats["duration_seconds"] = round(time.monotonic() - start, 2)
            self.last_run = stats
            self.logger.info("scrape_completed", **stats)
            return stats

    async def _scrape_once(self) -> Catalog:
        page = await self.adapter.fetch_snapshot()
        catalog = build_catalog(page.html, page.state, self.base_url, scraped_at=page.fetched_at)
        if catalog.is_empty:
            raise EmptyCatalogError(self.adapter.source_slug)
        return catalog

    @staticmethod
    def _run_stats(catalog: Catalog, snapshot: CatalogSnapshot) -> Dict[str, Any]:
        statuses = [product.offer.status for _, product in catalog.iter_products()]
        return {
            "products": snapshot.total_products,
            "categories": snapshot.total_categories,
            "offer_ids": snapshot.total_offer_ids,
            "matched": statuses.count(OfferStatus.MATCHED),
            "unmatched": statuses.count(OfferStatus.UNMATCHED),
            "duplicates": statuses.count(OfferStatus.DUPLICATE),
            "state_entries": catalog.total_entries,
            "integrity": catalog.integrity.to_dict() if catalog.integrity else {},
        }


# Singleton instance
_scraper_service: Optional[ScraperService] = None


def get_scraper_service() -> ScraperService:
    """Get the global ScraperService singleton."""
    global _scraper_service
    if _scraper_service is None:
        _scraper_service = ScraperService(get_catalog_store())
    return _scraper_service
