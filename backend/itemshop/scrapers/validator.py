"""Integrity checks over an assembled catalog."""

from dataclasses import dataclass, field
from typing import List

import structlog

from itemshop.scrapers.base import Catalog

logger = structlog.get_logger(__name__)


@dataclass
class IntegrityReport:
    """Offer id coverage of a catalog.

    Duplicates are reported here but never repaired.
    """

    total_products: int = 0
    with_offer_id: int = 0
    without_offer_id: int = 0
    unique_offer_ids: int = 0
    duplicates: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.duplicates

    @property
    def match_rate(self) -> float:
        """Percentage of products carrying a trusted offer id."""
        if not self.total_products:
            return 0.0
        return round(self.with_offer_id / self.total_products * 100, 2)

    def to_dict(self) -> dict:
        return {
            "total_products": self.total_products,
            "with_offer_id": self.with_offer_id,
            "without_offer_id": self.without_offer_id,
            "unique_offer_ids": self.unique_offer_ids,
            "duplicates": list(self.duplicates),
            "match_rate_percent": self.match_rate,
        }


def validate_catalog(catalog: Catalog) -> IntegrityReport:
    """Count offer id coverage and list ids claimed more than once."""
    report = IntegrityReport()
    offer_ids = set()

    for _, product in catalog.iter_products():
        report.total_products += 1
        offer_id = product.offer.valid_offer_id
        if offer_id is None:
            report.without_offer_id += 1
            continue
        report.with_offer_id += 1
        if offer_id in offer_ids:
            report.duplicates.append(
                f"{product.name} ({product.product.current_price} VBucks) - {offer_id}"
            )
        else:
            offer_ids.add(offer_id)

    report.unique_offer_ids = len(offer_ids)

    logger.info(
        "catalog_validated",
        total_products=report.total_products,
        with_offer_id=report.with_offer_id,
        without_offer_id=report.without_offer_id,
        unique_offer_ids=report.unique_offer_ids,
    )
    if report.duplicates:
        logger.warning(
            "duplicate_offer_ids_found",
            count=len(report.duplicates),
            duplicates=report.duplicates,
        )
    return report
