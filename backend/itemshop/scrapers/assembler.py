"""Group reconciled products into named catalog categories.

The storefront markup has changed shape several times, so categories are
found with three strategies of decreasing precision. A strategy runs only
when every earlier one produced no category at all:

1. Sections: elements with an ``id`` attribute, named by their heading.
2. Containers: wrapper/content divs, named by heading or product type.
3. Catch-all: every product on the page, grouped by product type.
"""

from collections import Counter
from typing import Dict, List, Optional, Sequence, Set, Tuple

import structlog
from bs4 import BeautifulSoup, Tag

from itemshop.scrapers.base import (
    CatalogEntry,
    Category,
    EnrichedProduct,
    OfferMatch,
    OfferStatus,
)
from itemshop.scrapers.html_extractor import ITEM_SELECTOR, extract_product
from itemshop.scrapers.matcher import reconcile
from itemshop.scrapers.utils.normalizer import collapse_whitespace

logger = structlog.get_logger(__name__)

SECTION_SELECTOR = "section[id], div[id]"
CONTAINER_SELECTOR = 'div[class*="container"], div[class*="wrapper"], div[class*="content"]'
SHOP_ROOT_ID = "item-shop"
FALLBACK_CATEGORY = "General"

HEADING_SELECTORS = (
    "h2.font-heading-now-bold.italic.uppercase",
    "h2.font-heading-now-bold",
    'h2[class*="font-heading-now-bold"]',
    'h2[class*="font-heading"]',
    "h2",
    "h1",
    "h3",
)

ProductKey = Tuple[str, str]


class CatalogAssembler:
    """Build the category list for one parsed storefront page.

    Args:
        entries: Offers located in the embedded state
        base_url: Site root used to absolutize product links
    """

    def __init__(self, entries: Sequence[CatalogEntry], base_url: str):
        self.entries = entries
        self.base_url = base_url

    def assemble(self, soup: BeautifulSoup) -> List[Category]:
        """Run the category strategies and clean up the result.

        Returns:
            Categories ordered by descending product count
        """
        categories: Dict[str, Category] = {}
        seen: Set[ProductKey] = set()

        self._assemble_from_sections(soup, categories, seen)
        strategy = "sections"
        if not categories:
            self._assemble_from_containers(soup, categories, seen)
            strategy = "containers"
        if not categories:
            self._assemble_by_type(soup, categories, seen)
            strategy = "by_type"

        cleaned = self.clean_up(list(categories.values()))
        logger.info(
            "catalog_assembled",
            strategy=strategy,
            categories=len(cleaned),
            products=sum(len(c.products) for c in cleaned),
        )
        return cleaned

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _assemble_from_sections(
        self, soup: BeautifulSoup, categories: Dict[str, Category], seen: Set[ProductKey]
    ) -> None:
        for section in soup.select(SECTION_SELECTOR):
            section_id = section.get("id")
            if not section_id or section_id == SHOP_ROOT_ID:
                continue
            products = self._collect_products(section, seen)
            if not products:
                continue
            name = section_heading(section) or section_id
            logger.debug("category_found", name=name, section_id=section_id, products=len(products))
            merge_into(categories, name, products)

    def _assemble_from_containers(
        self, soup: BeautifulSoup, categories: Dict[str, Category], seen: Set[ProductKey]
    ) -> None:
        for container in soup.select(CONTAINER_SELECTOR):
            products = self._collect_products(container, seen)
            if not products:
                continue
            merge_into(categories, container_name(container, products), products)

    def _assemble_by_type(
        self, soup: BeautifulSoup, categories: Dict[str, Category], seen: Set[ProductKey]
    ) -> None:
        body = soup.body or soup
        by_type: Dict[str, List[EnrichedProduct]] = {}
        for product in self._collect_products(body, seen):
            by_type.setdefault(product.product.type_label or FALLBACK_CATEGORY, []).append(product)
        for type_label, products in by_type.items():
            merge_into(categories, type_label, products)

    def _collect_products(self, root: Tag, seen: Set[ProductKey]) -> List[EnrichedProduct]:
        """Extract and reconcile the products below root not yet seen on the page."""
        products = []
        for item in root.select(ITEM_SELECTOR):
            scraped = extract_product(item, self.base_url)
            if scraped is None or scraped.identity in seen:
                continue
            seen.add(scraped.identity)
            products.append(reconcile(scraped, self.entries))
        return products

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    @staticmethod
    def clean_up(categories: List[Category]) -> List[Category]:
        """Deduplicate products, demote repeated offer ids and order categories.

        The first product claiming an offer id keeps it; every later one is
        marked DUPLICATE. Empty, unnamed and repeated categories are dropped.
        """
        kept: List[Category] = []
        kept_names: Set[str] = set()
        claimed: Set[str] = set()

        for category in categories:
            unique: List[EnrichedProduct] = []
            keys: Set[ProductKey] = set()
            for product in category.products:
                if product.identity in keys:
                    continue
                keys.add(product.identity)
                unique.append(product)

            # Dropped categories must not claim offer ids
            if not unique or not category.name or category.name in kept_names:
                continue

            for product in unique:
                if product.offer.status is not OfferStatus.MATCHED:
                    continue
                offer_id = product.offer.offer_id
                if offer_id in claimed:
                    logger.warning(
                        "duplicate_offer_id",
                        offer_id=offer_id,
                        product=product.name,
                        price=product.product.current_price,
                    )
                    product.offer = OfferMatch.duplicate_of(offer_id)
                else:
                    claimed.add(offer_id)

            kept_names.add(category.name)
            kept.append(Category(name=category.name, products=unique))

        # list.sort is stable, so equal counts keep discovery order
        kept.sort(key=lambda c: len(c.products), reverse=True)
        return kept


def merge_into(categories: Dict[str, Category], name: str, products: List[EnrichedProduct]) -> None:
    """Add products to a named category, skipping ones it already holds."""
    existing = categories.get(name)
    if existing is None:
        categories[name] = Category(name=name, products=list(products))
        return
    present = {p.identity for p in existing.products}
    for product in products:
        if product.identity not in present:
            present.add(product.identity)
            existing.products.append(product)


def _first_heading(root: Optional[Tag]) -> str:
    if root is None:
        return ""
    for selector in HEADING_SELECTORS:
        heading = root.select_one(selector)
        text = heading.get_text().strip() if heading is not None else ""
        if text:
            return text
    return ""


def section_heading(section: Tag) -> str:
    """Title of a section, looked up in the section first and then its parent."""
    title = _first_heading(section) or _first_heading(section.parent)
    return collapse_whitespace(title)


def container_name(container: Tag, products: Sequence[EnrichedProduct]) -> str:
    """Name a container by its first heading, else its most common product type."""
    heading = container.select_one("h1, h2, h3")
    name = heading.get_text().strip() if heading is not None else ""
    if name:
        return name

    types = [p.product.type_label for p in products if p.product.type_label]
    if types:
        # Counter keeps insertion order, so most_common breaks ties by first seen
        return Counter(types).most_common(1)[0][0]
    return FALLBACK_CATEGORY
