"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from typing import Iterable, Optional

import pytest

from itemshop.dependencies import general_rate_limit, update_rate_limit

BASE_URL = "https://www.fortnite.com"
SCRAPED_AT = datetime(2025, 6, 1, 5, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def scraped_at() -> datetime:
    return SCRAPED_AT


def _tile(
    name: str,
    price: Optional[int],
    href: Optional[str] = None,
    type_label: str = "Traje",
    original: Optional[int] = None,
    badge: Optional[str] = None,
    srcset: Optional[str] = None,
    src: Optional[str] = None,
) -> str:
    """Render one catalog tile the way the storefront does."""
    if href is None:
        href = "/es-ES/item-shop/" + name.lower().replace(" ", "-")
    parts = ['<div data-testid="grid-catalog-item">', f'<a href="{href}">']
    if srcset is not None or src is not None:
        attrs = []
        if srcset is not None:
            attrs.append(f'srcset="{srcset}"')
        if src is not None:
            attrs.append(f'src="{src}"')
        parts.append(f"<img {' '.join(attrs)}/>")
    if badge is not None:
        parts.append(f'<span class="bg-yellow-100">{badge}</span>')
    parts.append(f'<p data-testid="item-title">{name}</p>')
    parts.append(f'<span data-testid="item-type">{type_label}</span>')
    if original is not None:
        parts.append(f'<s data-testid="original-price">{original}</s>')
    if price is not None:
        parts.append(f'<span data-testid="current-vbuck-price">{price}</span>')
    parts.append("</a></div>")
    return "".join(parts)


def _section(section_id: str, heading: Optional[str], tiles: Iterable[str], heading_class: str = "font-heading-now-bold italic uppercase") -> str:
    title = f'<h2 class="{heading_class}">{heading}</h2>' if heading is not None else ""
    return f'<section id="{section_id}">{title}<div class="grid">{"".join(tiles)}</div></section>'


def _page(*blocks: str) -> str:
    return f'<html><body><main id="item-shop">{"".join(blocks)}</main></body></html>'


def _entry(offer_id: str, title: str, price: Optional[int] = None, **extra) -> dict:
    entry = {"offerId": offer_id, "title": title}
    if price is not None:
        entry["price"] = price
    entry.update(extra)
    return entry


def _state(*entries: dict) -> dict:
    """Wrap offers in a Remix-shaped client state."""
    return {
        "state": {
            "loaderData": {
                "routes/item-shop": {
                    "layout": {"sections": [{"offers": list(entries)}]},
                }
            }
        }
    }


@pytest.fixture
def make_tile():
    return _tile


@pytest.fixture
def make_section():
    return _section


@pytest.fixture
def make_page():
    return _page


@pytest.fixture
def make_entry():
    return _entry


@pytest.fixture
def make_state():
    return _state


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Give every test fresh API rate limit buckets."""
    general_rate_limit.reset()
    update_rate_limit.reset()
    yield
    general_rate_limit.reset()
    update_rate_limit.reset()
