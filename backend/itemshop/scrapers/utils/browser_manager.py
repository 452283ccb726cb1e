"""Playwright browser lifecycle manager with anti-detection.

Provides a shared Chromium instance with named contexts, proxy rotation,
session cookies and stealth configuration.
"""

import asyncio
import json
import random
from pathlib import Path
from typing import Dict, List, Optional

import structlog
from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from itemshop.config import settings
from itemshop.scrapers.utils.proxy_manager import NoProxyManager, ProxyEntry, ProxyManager

logger = structlog.get_logger(__name__)


# Desktop Chrome and Edge builds; the storefront serves its full grid to these
USER_AGENTS: List[str] = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
]


def get_random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def load_cookies(path: str) -> List[dict]:
    """Read browser cookies from a JSON file.

    The file holds a list of Playwright cookie dicts (name, value, domain,
    path, ...). A missing or unreadable file yields no cookies.
    """
    if not path:
        return []
    cookie_file = Path(path)
    if not cookie_file.is_file():
        logger.warning("cookies_file_missing", path=path)
        return []
    try:
        cookies = json.loads(cookie_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("cookies_file_invalid", path=path, error=str(e))
        return []
    if not isinstance(cookies, list):
        logger.warning("cookies_file_invalid", path=path, error="expected a JSON list")
        return []
    return [c for c in cookies if isinstance(c, dict) and c.get("name") and c.get("domain")]


class BrowserManager:
    """Manages the Playwright browser lifecycle.

    Each named context gets:
    - a random desktop user agent
    - the configured locale, timezone and Accept-Language header
    - a proxy from the pool, when one is configured
    - the stored session cookies
    - the stealth init script
    """

    def __init__(
        self,
        headless: bool = True,
        proxy_manager: Optional[ProxyManager] = None,
        locale: str = "es-ES",
        timezone_id: str = "America/Lima",
        cookies: Optional[List[dict]] = None,
    ):
        self._headless = headless
        self._proxy_manager = proxy_manager or NoProxyManager()
        self._locale = locale
        self._timezone_id = timezone_id
        self._cookies = cookies or []
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self._contexts: Dict[str, BrowserContext] = {}
        self._context_proxies: Dict[str, Optional[ProxyEntry]] = {}

    async def start(self) -> None:
        """Launch the browser. Safe to call more than once."""
        async with self._lock:
            if self._browser:
                return
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-gpu",
                ],
            )
            logger.info("browser_started", headless=self._headless)

    async def stop(self) -> None:
        """Close all contexts and the browser."""
        async with self._lock:
            for name in list(self._contexts):
                await self._close_quietly(name)
            if self._browser:
                await self._browser.close()
                self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
            logger.info("browser_stopped")

    async def get_context(self, name: str = "default") -> BrowserContext:
        """Get or create a named browser context."""
        if name in self._contexts:
            return self._contexts[name]

        if not self._browser:
            await self.start()

        proxy = self._proxy_manager.get_proxy()
        context = await self._browser.new_context(
            user_agent=get_random_user_agent(),
            viewport={"width": 1920, "height": 1080},
            locale=self._locale,
            timezone_id=self._timezone_id,
            extra_http_headers={
                "Accept-Language": f"{self._locale},{self._locale.split('-')[0]};q=0.9,en;q=0.8",
                "DNT": "1",
            },
            proxy=proxy.to_playwright() if proxy else None,
            java_script_enabled=True,
        )
        await context.add_init_script(STEALTH_JS)
        if self._cookies:
            await context.add_cookies(self._cookies)

        self._contexts[name] = context
        self._context_proxies[name] = proxy
        logger.info(
            "browser_context_created",
            name=name,
            proxy=proxy.label if proxy else None,
            cookies=len(self._cookies),
        )
        return context

    async def new_page(self, name: str = "default") -> Page:
        """Convenience: get context and open a new page."""
        ctx = await self.get_context(name)
        return await ctx.new_page()

    async def report_failure(self, name: str) -> None:
        """Mark the context's proxy as failed and drop the context.

        The next get_context() call for this name picks a fresh proxy.
        """
        proxy = self._context_proxies.get(name)
        if proxy:
            self._proxy_manager.mark_failed(proxy.server)
        await self._close_quietly(name)

    def report_success(self, name: str) -> None:
        proxy = self._context_proxies.get(name)
        if proxy:
            self._proxy_manager.mark_success(proxy.server)

    def proxy_stats(self) -> dict:
        return self._proxy_manager.get_stats()

    async def close_context(self, name: str) -> None:
        """Close a specific context by name."""
        self._context_proxies.pop(name, None)
        ctx = self._contexts.pop(name, None)
        if ctx:
            await ctx.close()

    async def _close_quietly(self, name: str) -> None:
        try:
            await self.close_context(name)
        except Exception as e:
            logger.warning("browser_context_close_failed", name=name, error=str(e))


# Minimal stealth JS to mask automation signals
STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['es-ES', 'es', 'en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) =>
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters);
"""


# Singleton instance
_browser_manager: Optional[BrowserManager] = None


def get_browser_manager() -> BrowserManager:
    """Get the global BrowserManager singleton."""
    global _browser_manager
    if _browser_manager is None:
        proxies = settings.get_proxy_list()
        pm = ProxyManager(proxies, strategy=settings.PROXY_STRATEGY) if proxies else NoProxyManager()
        _browser_manager = BrowserManager(
            headless=settings.HEADLESS,
            proxy_manager=pm,
            locale=settings.BROWSER_LOCALE,
            timezone_id=settings.BROWSER_TIMEZONE,
            cookies=load_cookies(settings.COOKIES_FILE),
        )
    return _browser_manager
