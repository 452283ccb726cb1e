"""Storefront scraping.

This package provides:
- The catalog data model and the browser adapter base class
- The extraction pipeline turning page HTML and client state into a catalog
- Browser, proxy, rate limiting and retry utilities
- The scrape service and its cron scheduler
"""

from .base import (
    BaseScraperAdapter,
    Catalog,
    CatalogEntry,
    Category,
    EnrichedProduct,
    ImageRecord,
    OfferMatch,
    OfferStatus,
    PageSnapshot,
    ScrapedProduct,
)
from .pipeline import build_catalog

__all__ = [
    "BaseScraperAdapter",
    "Catalog",
    "CatalogEntry",
    "Category",
    "EnrichedProduct",
    "ImageRecord",
    "OfferMatch",
    "OfferStatus",
    "PageSnapshot",
    "ScrapedProduct",
    "build_catalog",
]
