"""Pydantic schemas for the item shop API.

All request/response models are defined here for easy import.
"""

from itemshop.schemas.common import ApiResponse, CamelModel, ErrorResponse
from itemshop.schemas.catalog import (
    CatalogSnapshot,
    CategorySchema,
    CategoryStats,
    CategorySummary,
    ProductSchema,
    SearchHit,
    SearchResult,
    StatsResponse,
)
from itemshop.schemas.health import HealthCheckResponse

__all__ = [
    # Common
    "ApiResponse",
    "CamelModel",
    "ErrorResponse",
    # Catalog
    "CatalogSnapshot",
    "CategorySchema",
    "CategoryStats",
    "CategorySummary",
    "ProductSchema",
    "SearchHit",
    "SearchResult",
    "StatsResponse",
    # Health
    "HealthCheckResponse",
]
