"""Extract products from rendered catalog tiles."""

from typing import List, Optional

from bs4 import Tag

from itemshop.scrapers.base import ScrapedProduct
from itemshop.scrapers.utils.images import extract_images
from itemshop.scrapers.utils.normalizer import absolutize_url, extract_first_integer


# Storefront markup contract
ITEM_SELECTOR = '[data-testid="grid-catalog-item"]'
TITLE_SELECTOR = '[data-testid="item-title"]'
TYPE_SELECTOR = '[data-testid="item-type"]'
PRICE_SELECTOR = '[data-testid="current-vbuck-price"]'
ORIGINAL_PRICE_SELECTOR = '[data-testid="original-price"]'
BADGE_SELECTOR = ".bg-white, .bg-yellow-100"


def _text(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return node.get_text().strip()


def extract_product(item: Tag, base_url: str) -> Optional[ScrapedProduct]:
    """Read one catalog tile into a ScrapedProduct.

    Args:
        item: Element matching ITEM_SELECTOR
        base_url: Site root used to absolutize relative hrefs

    Returns:
        The product, or None when the tile lacks a usable name, a
        positive price or a detail link
    """
    name = _text(item.select_one(TITLE_SELECTOR))
    if len(name) < 2:
        return None

    current_price = extract_first_integer(_text(item.select_one(PRICE_SELECTOR)))
    if current_price <= 0:
        return None

    original_node = item.select_one(ORIGINAL_PRICE_SELECTOR)
    original_price = extract_first_integer(_text(original_node)) if original_node is not None else None

    anchor = item.find("a")
    href = anchor.get("href") if anchor is not None else None
    detail_url = absolutize_url(href, base_url)
    if not detail_url or detail_url == base_url:
        return None

    badge = _text(item.select_one(BADGE_SELECTOR))

    return ScrapedProduct(
        name=name,
        type_label=_text(item.select_one(TYPE_SELECTOR)),
        current_price=current_price,
        detail_url=detail_url,
        original_price=original_price,
        discount_label=badge or None,
        images=extract_images(item),
    )


def extract_products(root: Tag, base_url: str) -> List[ScrapedProduct]:
    """Extract every usable product tile below root, in document order."""
    products = []
    for item in root.select(ITEM_SELECTOR):
        product = extract_product(item, base_url)
        if product is not None:
            products.append(product)
    return products
