"""Scraper utilities for text normalization, images, proxies, rate limiting and retries."""

from .normalizer import absolutize_url, collapse_whitespace, extract_first_integer, normalize_for_match
from .images import extract_images
from .rate_limiter import DomainRateLimiter, TokenBucket
from .proxy_manager import NoProxyManager, ProxyEntry, ProxyManager, check_proxy
from .retry import scrape_retrying


__all__ = [
    # Normalization
    "absolutize_url",
    "collapse_whitespace",
    "extract_first_integer",
    "normalize_for_match",
    # Images
    "extract_images",
    # Rate limiting
    "DomainRateLimiter",
    "TokenBucket",
    # Proxy management
    "NoProxyManager",
    "ProxyEntry",
    "ProxyManager",
    "check_proxy",
    # Retry
    "scrape_retrying",
]
