"""Catalog snapshot schemas.

These models define the persisted JSON document and the API payloads
derived from it. Every key is emitted in camelCase.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import model_serializer
from pydantic.alias_generators import to_camel

from itemshop.scrapers.base import Catalog, EnrichedProduct, OfferStatus
from itemshop.schemas.common import CamelModel


DISCOUNT_TEMPLATE = "{amount} VBucks de descuento"

# Keys left out of the document when they hold no value
OPTIONAL_PRODUCT_FIELDS = ("original_price", "discount", "color1", "color2", "color3")


class ProductSchema(CamelModel):
    """One product as stored in the snapshot."""

    name: str
    english_title: str
    url_name: str = ""
    offer_id: Optional[str] = None
    offer_status: OfferStatus = OfferStatus.UNMATCHED
    asset_type: str = "unknown"
    price: int
    original_price: Optional[int] = None
    discount: Optional[str] = None
    is_new: bool = False
    images: List[str] = []
    url: str
    type: str = ""
    color1: Optional[str] = None
    color2: Optional[str] = None
    color3: Optional[str] = None

    @model_serializer(mode="wrap")
    def _omit_empty_optionals(self, handler):
        data = handler(self)
        for field_name in OPTIONAL_PRODUCT_FIELDS:
            if getattr(self, field_name) is None:
                data.pop(field_name, None)
                data.pop(to_camel(field_name), None)
        return data

    @classmethod
    def from_enriched(cls, product: EnrichedProduct) -> "ProductSchema":
        scraped = product.product
        discount = scraped.discount
        if not discount and scraped.original_price and scraped.original_price > scraped.current_price:
            discount = DISCOUNT_TEMPLATE.format(amount=scraped.original_price - scraped.current_price)

        color1, color2, color3 = product.colors
        return cls(
            name=scraped.name,
            english_title=product.canonical_title,
            url_name=product.url_name,
            offer_id=product.offer.valid_offer_id,
            offer_status=product.offer.status,
            asset_type=product.asset_type,
            price=scraped.current_price,
            original_price=scraped.original_price or None,
            discount=discount,
            is_new=scraped.is_new,
            images=[image.url for image in scraped.images],
            url=scraped.detail_url,
            type=scraped.type_label,
            color1=color1,
            color2=color2,
            color3=color3,
        )


class CategorySchema(CamelModel):
    """A named category and its products."""

    name: str
    products: List[ProductSchema] = []


class CatalogSnapshot(CamelModel):
    """The persisted catalog document."""

    categories: List[CategorySchema] = []
    total_products: int = 0
    total_categories: int = 0
    total_offer_ids: int = 0
    scraping_date: datetime

    @classmethod
    def from_catalog(cls, catalog: Catalog) -> "CatalogSnapshot":
        categories = [
            CategorySchema(
                name=category.name,
                products=[ProductSchema.from_enriched(p) for p in category.products],
            )
            for category in catalog.categories
        ]
        offer_ids = {
            product.offer_id
            for category in categories
            for product in category.products
            if product.offer_id
        }
        return cls(
            categories=categories,
            total_products=sum(len(c.products) for c in categories),
            total_categories=len(categories),
            total_offer_ids=len(offer_ids),
            scraping_date=catalog.scraped_at,
        )


class CategorySummary(CamelModel):
    """Category name with its product count."""

    name: str
    product_count: int


class SearchHit(ProductSchema):
    """A product matching a search, tagged with its category."""

    category: str


class SearchResult(CamelModel):
    query: str
    count: int
    products: List[SearchHit] = []


class CategoryStats(CamelModel):
    name: str
    product_count: int
    new_products: int = 0
    discounted_products: int = 0


class StatsResponse(CamelModel):
    """Aggregate statistics about the current snapshot."""

    total_categories: int
    total_products: int
    new_products: int
    discounted_products: int
    matched_offer_ids: int
    scraping_date: datetime
    categories: List[CategoryStats] = []
