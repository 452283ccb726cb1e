"""Reconcile HTML products with offers from the embedded state."""

from typing import Callable, Optional, Sequence

from itemshop.scrapers.base import (
    UNKNOWN_ASSET_TYPE,
    CatalogEntry,
    EnrichedProduct,
    OfferMatch,
    ScrapedProduct,
)
from itemshop.scrapers.utils.normalizer import normalize_for_match


def _first_match(
    entries: Sequence[CatalogEntry], price: int, same_name: Callable[[CatalogEntry], bool]
) -> Optional[CatalogEntry]:
    for entry in entries:
        if entry.price == price and same_name(entry):
            return entry
    return None


def find_entry(product: ScrapedProduct, entries: Sequence[CatalogEntry]) -> Optional[CatalogEntry]:
    """Find the state entry describing a product.

    An exact title match is tried over all entries before a loose one
    (case and whitespace ignored). Both passes require the entry price to
    equal the product's current price, since titles alone are ambiguous
    across bundles and variants.
    """
    name = product.name
    exact = _first_match(
        entries,
        product.current_price,
        lambda e: e.title == name or e.english_title == name,
    )
    if exact is not None:
        return exact

    loose_name = normalize_for_match(name)
    return _first_match(
        entries,
        product.current_price,
        lambda e: normalize_for_match(e.title) == loose_name
        or (e.english_title is not None and normalize_for_match(e.english_title) == loose_name),
    )


def reconcile(product: ScrapedProduct, entries: Sequence[CatalogEntry]) -> EnrichedProduct:
    """Attach offer metadata to a scraped product.

    Args:
        product: Product read from the HTML
        entries: Offers located in the state tree

    Returns:
        EnrichedProduct, MATCHED when an entry was found and UNMATCHED
        (named after the product itself) otherwise
    """
    entry = find_entry(product, entries)
    if entry is None:
        return EnrichedProduct(
            product=product,
            offer=OfferMatch.unmatched(),
            canonical_title=product.name,
        )

    return EnrichedProduct(
        product=product,
        offer=OfferMatch.matched(entry.offer_id),
        canonical_title=entry.english_title or product.name,
        url_name=entry.url_name or "",
        asset_type=entry.asset_type or UNKNOWN_ASSET_TYPE,
        colors=entry.colors,
    )
