"""Turn a rendered storefront page into a validated catalog."""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from bs4 import BeautifulSoup

from itemshop.scrapers.assembler import CatalogAssembler
from itemshop.scrapers.base import Catalog
from itemshop.scrapers.state_locator import find_root_offer_id, locate_catalog_entries
from itemshop.scrapers.validator import validate_catalog

logger = structlog.get_logger(__name__)


def build_catalog(
    html: str,
    state: Any,
    base_url: str,
    scraped_at: Optional[datetime] = None,
) -> Catalog:
    """Build a catalog from page HTML and the page's embedded state.

    Malformed input never raises: a missing state leaves every product
    unmatched and a page without catalog items yields an empty catalog.

    Args:
        html: Rendered page HTML
        state: Decoded embedded state, or None when it was unavailable
        base_url: Site root without a trailing slash
        scraped_at: Timestamp to record, defaults to now (UTC)

    Returns:
        Catalog with its integrity report attached
    """
    entries = locate_catalog_entries(state)
    soup = BeautifulSoup(html or "", "lxml")
    categories = CatalogAssembler(entries, base_url).assemble(soup)

    catalog = Catalog(
        categories=categories,
        total_entries=len(entries),
        scraped_at=scraped_at or datetime.now(timezone.utc),
        root_offer_id=find_root_offer_id(state),
    )
    catalog.integrity = validate_catalog(catalog)

    logger.info(
        "catalog_built",
        state_entries=len(entries),
        categories=catalog.total_categories,
        products=catalog.total_products,
        root_offer_id=catalog.root_offer_id,
    )
    return catalog
