"""Catalog data model and base scraper adapter interface.

The dataclasses here are the values passed between the pipeline stages:
state entries and HTML products go in, a categorized Catalog comes out.
Browser-driven sources inherit from BaseScraperAdapter and hand the
pipeline a PageSnapshot.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import structlog
from playwright.async_api import Page


UNKNOWN_ASSET_TYPE = "unknown"
NEW_BADGE_MARKERS = ("¡Nuevo!", "Nuevo")


class OfferStatus(str, Enum):
    """Outcome of reconciling a product against the state entries."""

    UNMATCHED = "unmatched"
    MATCHED = "matched"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class OfferMatch:
    """Offer identifier attached to a product.

    MATCHED carries the identifier; DUPLICATE carries the identifier that
    was already claimed by an earlier product; UNMATCHED carries nothing.
    """

    status: OfferStatus = OfferStatus.UNMATCHED
    offer_id: Optional[str] = None

    @classmethod
    def unmatched(cls) -> "OfferMatch":
        return cls(OfferStatus.UNMATCHED, None)

    @classmethod
    def matched(cls, offer_id: str) -> "OfferMatch":
        if not offer_id:
            raise ValueError("offer_id is required for a matched offer")
        return cls(OfferStatus.MATCHED, offer_id)

    @classmethod
    def duplicate_of(cls, offer_id: str) -> "OfferMatch":
        return cls(OfferStatus.DUPLICATE, offer_id)

    @property
    def is_matched(self) -> bool:
        return self.status is OfferStatus.MATCHED

    @property
    def valid_offer_id(self) -> Optional[str]:
        """The identifier when it may be trusted, otherwise None."""
        return self.offer_id if self.is_matched else None


@dataclass(frozen=True)
class ImageRecord:
    """One candidate image of a product."""

    url: str
    resolution: str
    width: int = 0


@dataclass(frozen=True)
class CatalogEntry:
    """An offer record found in the page's embedded client state."""

    offer_id: str
    title: str
    english_title: Optional[str] = None
    url_name: Optional[str] = None
    asset_type: Optional[str] = None
    price: Optional[int] = None
    original_price: Optional[int] = None
    discount: Optional[str] = None
    colors: Tuple[Optional[str], Optional[str], Optional[str]] = (None, None, None)

    @classmethod
    def from_state_node(cls, node: Dict[str, Any]) -> "CatalogEntry":
        """Build an entry from a state mapping holding offerId and title.

        The price comes from pricing.finalPrice when it is set, otherwise
        from the flat price field.
        """
        pricing = node.get("pricing")
        final_price = pricing.get("finalPrice") if isinstance(pricing, dict) else None
        return cls(
            offer_id=str(node["offerId"]),
            title=str(node["title"]),
            english_title=_optional_str(node.get("englishTitle")),
            url_name=_optional_str(node.get("urlName")),
            asset_type=_optional_str(node.get("assetType")),
            price=_coerce_price(final_price or node.get("price")),
            original_price=_coerce_price(node.get("originalPrice")),
            discount=_optional_str(node.get("discount")),
            colors=(
                _optional_str(node.get("color1")),
                _optional_str(node.get("color2")),
                _optional_str(node.get("color3")),
            ),
        )


@dataclass
class ScrapedProduct:
    """Product data read from one rendered catalog tile."""

    name: str
    type_label: str
    current_price: int
    detail_url: str
    original_price: Optional[int] = None
    discount_label: Optional[str] = None
    images: List[ImageRecord] = field(default_factory=list)
    expiration: Optional[str] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.name or len(self.name) < 2:
            raise ValueError("name must have at least 2 characters")
        if self.current_price is None or self.current_price <= 0:
            raise ValueError("current_price must be a positive integer")
        if not self.detail_url:
            raise ValueError("detail_url is required")

    @property
    def is_new(self) -> bool:
        label = self.discount_label or ""
        return any(marker in label for marker in NEW_BADGE_MARKERS)

    @property
    def discount(self) -> Optional[str]:
        """Badge text when it announces a discount rather than a new item."""
        if self.discount_label and not self.is_new:
            return self.discount_label
        return None

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.name, self.detail_url)


@dataclass
class EnrichedProduct:
    """A scraped product merged with its matching state entry."""

    product: ScrapedProduct
    offer: OfferMatch
    canonical_title: str
    url_name: str = ""
    asset_type: str = UNKNOWN_ASSET_TYPE
    colors: Tuple[Optional[str], Optional[str], Optional[str]] = (None, None, None)

    @property
    def name(self) -> str:
        return self.product.name

    @property
    def detail_url(self) -> str:
        return self.product.detail_url

    @property
    def identity(self) -> Tuple[str, str]:
        return self.product.identity


@dataclass
class Category:
    """A named group of products."""

    name: str
    products: List[EnrichedProduct] = field(default_factory=list)


@dataclass
class Catalog:
    """The assembled catalog of one scrape."""

    categories: List[Category]
    total_entries: int
    scraped_at: datetime
    root_offer_id: Optional[str] = None
    integrity: Optional[Any] = None  # IntegrityReport, set by the pipeline

    @property
    def total_products(self) -> int:
        return sum(len(c.products) for c in self.categories)

    @property
    def total_categories(self) -> int:
        return len(self.categories)

    @property
    def is_empty(self) -> bool:
        return not self.categories

    def iter_products(self):
        for category in self.categories:
            for product in category.products:
                yield category, product


@dataclass
class PageSnapshot:
    """Raw material captured from one rendered storefront page."""

    html: str
    state: Any
    url: str
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _coerce_price(value: Any) -> Optional[int]:
    """Accept integral numbers only; anything else cannot join on price."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class BaseScraperAdapter(ABC):
    """Abstract base class for browser-driven storefront sources.

    Subclasses implement fetch_snapshot() and return the rendered HTML
    together with the page's embedded state.
    """

    source_slug: str = ""  # Must be overridden in subclass

    def __init__(self):
        """Initialize the adapter with dependency injection points."""
        self.rate_limiter = None  # Injected by the scraper service
        self.logger = structlog.get_logger(adapter=self.source_slug)

    @abstractmethod
    async def fetch_snapshot(self) -> PageSnapshot:
        """Render the storefront and capture its HTML and state.

        Raises:
            playwright Error/TimeoutError: If the page cannot be loaded
        """

    async def _safe_scrape(
        self, page: Page, url: str, wait_selector: Optional[str] = None,
        timeout_ms: int = 30000, wait_timeout_ms: int = 10000,
    ) -> None:
        """Navigate to a URL with rate limiting.

        Args:
            page: Playwright Page instance
            url: URL to load
            wait_selector: Optional CSS selector to wait for
            timeout_ms: Navigation timeout
            wait_timeout_ms: Selector wait timeout
        """
        if self.rate_limiter:
            from urllib.parse import urlparse
            domain = urlparse(url).netloc
            await self.rate_limiter.acquire(domain)

        self.logger.info("scraping_url", url=url)
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

        if wait_selector:
            await page.wait_for_selector(wait_selector, timeout=wait_timeout_ms)

    async def cleanup(self) -> None:
        """Release resources held by the adapter."""
