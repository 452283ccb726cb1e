"""Application configuration via Pydantic Settings."""

from typing import List
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Storefront
    SHOP_URL: str = "https://www.fortnite.com/item-shop?lang=es-ES"
    BASE_URL: str = "https://www.fortnite.com"
    STOREFRONT_REQUESTS_PER_MINUTE: int = 6  # Page loads allowed per minute against SHOP_URL

    @model_validator(mode="after")
    def strip_base_url(self) -> "Settings":
        """Relative hrefs are appended to BASE_URL, so it must not end with '/'."""
        self.BASE_URL = self.BASE_URL.rstrip("/")
        return self

    # Snapshot persistence
    SNAPSHOT_PATH: str = "data/item_shop_snapshot.json"

    # Browser
    HEADLESS: bool = True
    BROWSER_LOCALE: str = "es-ES"
    BROWSER_TIMEZONE: str = "America/Lima"
    PAGE_TIMEOUT_MS: int = 60000
    ITEM_WAIT_TIMEOUT_MS: int = 15000
    SETTLE_DELAY_MIN_SECONDS: float = 3.0
    SETTLE_DELAY_MAX_SECONDS: float = 6.0
    COOKIES_FILE: str = ""  # JSON list of Playwright cookie dicts

    # Retry policy for a full scrape
    SCRAPER_RETRIES: int = 5
    SCRAPER_RETRY_DELAY_SECONDS: float = 3.0

    # Proxy
    PROXY_LIST: str = ""  # Comma-separated proxy URLs or ip:port:user:password entries
    PROXY_STRATEGY: str = "random"

    # Scheduler
    SCRAPE_CRON: str = "0 0 * * *"
    SCRAPE_TIMEZONE: str = "America/Lima"

    # API rate limits
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    UPDATE_RATE_LIMIT_REQUESTS: int = 5
    UPDATE_RATE_LIMIT_WINDOW_SECONDS: int = 60 * 60

    # Frontend
    FRONTEND_URL: str = "*"

    def get_proxy_list(self) -> List[str]:
        """Parse PROXY_LIST into a list of proxy strings.

        Returns:
            List of proxy strings, empty if PROXY_LIST is not set
        """
        if not self.PROXY_LIST:
            return []
        return [p.strip() for p in self.PROXY_LIST.split(",") if p.strip()]


settings = Settings()
