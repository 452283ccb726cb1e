"""Item shop storefront adapter.

Renders the storefront in Chromium and captures the two inputs the
catalog pipeline needs: the rendered HTML and the Remix client state
(``window.__remixContext``) that carries offer ids.
"""

import asyncio
import random
from typing import Any, Optional

import structlog
from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError

from itemshop.config import settings
from itemshop.scrapers.base import BaseScraperAdapter, PageSnapshot
from itemshop.scrapers.html_extractor import ITEM_SELECTOR
from itemshop.scrapers.utils.browser_manager import BrowserManager, get_browser_manager

logger = structlog.get_logger(__name__)

STATE_EXPRESSION = "() => window.__remixContext || null"


class ItemShopAdapter(BaseScraperAdapter):
    """Capture a PageSnapshot of the item shop page."""

    source_slug = "item-shop"

    def __init__(
        self,
        browser_manager: Optional[BrowserManager] = None,
        shop_url: Optional[str] = None,
    ):
        super().__init__()
        self.browser_manager = browser_manager or get_browser_manager()
        self.shop_url = shop_url or settings.SHOP_URL
        self.logger = logger.bind(adapter=self.source_slug)

    async def fetch_snapshot(self) -> PageSnapshot:
        """Load the storefront once and capture HTML plus client state.

        A failed load marks the context's proxy as failed and discards
        the context, so a retry starts with a fresh proxy.
        """
        page = await self.browser_manager.new_page(self.source_slug)
        try:
            await self._safe_scrape(page, self.shop_url, timeout_ms=settings.PAGE_TIMEOUT_MS)
            await self._settle(page)
            await self._wait_for_items(page)
            state = await self._read_state(page)
            html = await page.content()
        except PlaywrightError as e:
            self.logger.warning("item_shop_load_failed", url=self.shop_url, error=str(e))
            await self.browser_manager.report_failure(self.source_slug)
            raise
        finally:
            await self._close_page(page)

        self.browser_manager.report_success(self.source_slug)
        self.logger.info(
            "item_shop_snapshot_captured",
            html_length=len(html),
            has_state=state is not None,
        )
        return PageSnapshot(html=html, state=state, url=self.shop_url)

    async def _settle(self, page: Page) -> None:
        """Pause like a reader would and move the mouse over the page."""
        delay = random.uniform(settings.SETTLE_DELAY_MIN_SECONDS, settings.SETTLE_DELAY_MAX_SECONDS)
        await asyncio.sleep(delay)
        await page.mouse.move(100, 100)
        await asyncio.sleep(1.0)
        await page.mouse.move(200, 200)
        await asyncio.sleep(0.5)

    async def _wait_for_items(self, page: Page) -> None:
        # The grid sometimes renders late; parsing still proceeds without it
        try:
            await page.wait_for_selector(ITEM_SELECTOR, timeout=settings.ITEM_WAIT_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            self.logger.warning("catalog_items_not_visible", timeout_ms=settings.ITEM_WAIT_TIMEOUT_MS)

    async def _read_state(self, page: Page) -> Any:
        try:
            return await page.evaluate(STATE_EXPRESSION)
        except PlaywrightError as e:
            self.logger.warning("client_state_unavailable", error=str(e))
            return None

    async def _close_page(self, page: Page) -> None:
        try:
            await page.close()
        except PlaywrightError as e:
            self.logger.debug("page_close_failed", error=str(e))

    async def cleanup(self) -> None:
        await self.browser_manager.close_context(self.source_slug)
