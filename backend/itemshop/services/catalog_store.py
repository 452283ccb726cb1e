"""Catalog snapshot persistence and read queries.

The last successful scrape is kept as a single JSON document on disk and
cached in memory. The API serves every read from that cached copy.
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog
from pydantic import ValidationError

from itemshop.config import settings
from itemshop.core.exceptions import NotFoundError, SnapshotUnavailableError
from itemshop.schemas.catalog import (
    CatalogSnapshot,
    CategorySchema,
    CategoryStats,
    CategorySummary,
    SearchHit,
    SearchResult,
    StatsResponse,
)

logger = structlog.get_logger(__name__)


class CatalogStore:
    """File-backed store for the current catalog snapshot."""

    def __init__(self, path: str):
        """Initialize the store.

        Args:
            path: Location of the snapshot JSON file
        """
        self.path = Path(path)
        self._snapshot: Optional[CatalogSnapshot] = None
        self.logger = logger.bind(service="catalog_store")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, snapshot: CatalogSnapshot) -> None:
        """Write the snapshot atomically and make it current.

        The document is written to a temporary file in the same directory
        and then moved over the previous one, so readers never observe a
        partial file.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = snapshot.model_dump_json(by_alias=True, indent=2)

        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        self._snapshot = snapshot
        self.logger.info(
            "snapshot_saved",
            path=str(self.path),
            categories=snapshot.total_categories,
            products=snapshot.total_products,
        )

    def load(self) -> Optional[CatalogSnapshot]:
        """Read the snapshot from disk.

        Returns:
            The snapshot, or None when the file is missing or invalid
        """
        if not self.path.is_file():
            self.logger.info("snapshot_missing", path=str(self.path))
            return None
        try:
            snapshot = CatalogSnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            self.logger.warning("snapshot_unreadable", path=str(self.path), error=str(e))
            return None

        self._snapshot = snapshot
        self.logger.info("snapshot_loaded", path=str(self.path), products=snapshot.total_products)
        return snapshot

    def get_or_load(self) -> Optional[CatalogSnapshot]:
        if self._snapshot is not None:
            return self._snapshot
        return self.load()

    def require(self) -> CatalogSnapshot:
        """Current snapshot, or SnapshotUnavailableError when there is none."""
        snapshot = self.get_or_load()
        if snapshot is None:
            raise SnapshotUnavailableError()
        return snapshot

    @property
    def last_update(self) -> Optional[datetime]:
        snapshot = self._snapshot
        return snapshot.scraping_date if snapshot else None

    @property
    def has_data(self) -> bool:
        return self._snapshot is not None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_categories(self) -> List[CategorySummary]:
        return [
            CategorySummary(name=c.name, product_count=len(c.products))
            for c in self.require().categories
        ]

    def get_category(self, name: str) -> CategorySchema:
        """Find a category by name, ignoring case.

        Raises:
            NotFoundError: If no category has that name
        """
        wanted = name.strip().lower()
        for category in self.require().categories:
            if category.name.lower() == wanted:
                return category
        raise NotFoundError("Category", name)

    def search(self, query: str) -> SearchResult:
        """Find products whose name or English title contains the query.

        Args:
            query: Search text, matched case-insensitively

        Raises:
            ValueError: If the query is blank
        """
        needle = (query or "").strip().lower()
        if not needle:
            raise ValueError("query must not be blank")

        hits = []
        for category in self.require().categories:
            for product in category.products:
                if needle in product.name.lower() or needle in product.english_title.lower():
                    hits.append(SearchHit(category=category.name, **product.model_dump()))

        self.logger.debug("catalog_searched", query=needle, hits=len(hits))
        return SearchResult(query=query.strip(), count=len(hits), products=hits)

    def stats(self) -> StatsResponse:
        snapshot = self.require()
        per_category = []
        for category in snapshot.categories:
            per_category.append(
                CategoryStats(
                    name=category.name,
                    product_count=len(category.products),
                    new_products=sum(1 for p in category.products if p.is_new),
                    discounted_products=sum(1 for p in category.products if p.discount),
                )
            )

        return StatsResponse(
            total_categories=snapshot.total_categories,
            total_products=snapshot.total_products,
            new_products=sum(c.new_products for c in per_category),
            discounted_products=sum(c.discounted_products for c in per_category),
            matched_offer_ids=snapshot.total_offer_ids,
            scraping_date=snapshot.scraping_date,
            categories=per_category,
        )


# Singleton instance
_catalog_store: Optional[CatalogStore] = None


def get_catalog_store() -> CatalogStore:
    """Get the global CatalogStore singleton."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = CatalogStore(settings.SNAPSHOT_PATH)
    return _catalog_store
