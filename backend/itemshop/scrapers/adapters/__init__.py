"""Storefront adapters."""

from .item_shop import ItemShopAdapter

__all__ = ["ItemShopAdapter"]
