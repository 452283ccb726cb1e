"""Proxy pool with health tracking for browser contexts."""

import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from urllib.parse import quote, unquote, urlsplit

import httpx
import structlog

logger = structlog.get_logger(__name__)

EGRESS_CHECK_URL = "https://ipinfo.io/json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProxyEntry:
    """A proxy endpoint and its health record.

    ``server`` is always a URL such as ``http://1.2.3.4:8080``; credentials
    are held apart because the browser takes them as separate fields.
    """

    server: str
    username: Optional[str] = None
    password: Optional[str] = None
    healthy: bool = True
    fail_count: int = 0
    success_count: int = 0
    last_used: Optional[datetime] = None
    last_failed: Optional[datetime] = None

    @classmethod
    def parse(cls, raw: str) -> "ProxyEntry":
        """Parse a proxy URL or an ``ip:port:user:password`` string.

        Raises:
            ValueError: If the string matches neither form
        """
        raw = raw.strip()
        if "://" in raw:
            parts = urlsplit(raw)
            if not parts.hostname or not parts.port:
                raise ValueError(f"Proxy URL needs a host and port: {raw!r}")
            return cls(
                server=f"{parts.scheme}://{parts.hostname}:{parts.port}",
                # Credentials are held decoded; to_httpx() quotes them again
                username=unquote(parts.username) if parts.username else None,
                password=unquote(parts.password) if parts.password else None,
            )

        fields = raw.split(":")
        if len(fields) == 2:
            host, port = fields
            username = password = None
        elif len(fields) == 4:
            host, port, username, password = fields
        else:
            raise ValueError(f"Unrecognized proxy format: {raw!r}")
        if not host or not port.isdigit():
            raise ValueError(f"Unrecognized proxy format: {raw!r}")
        return cls(server=f"http://{host}:{port}", username=username or None, password=password or None)

    @property
    def label(self) -> str:
        """Identifier safe to log (no credentials)."""
        return self.server

    def to_playwright(self) -> Dict[str, str]:
        config = {"server": self.server}
        if self.username:
            config["username"] = self.username
        if self.password:
            config["password"] = self.password
        return config

    def to_httpx(self) -> str:
        if not self.username:
            return self.server
        scheme, rest = self.server.split("://", 1)
        user = quote(self.username, safe="")
        password = quote(self.password or "", safe="")
        return f"{scheme}://{user}:{password}@{rest}"

    def mark_failed(self) -> None:
        self.fail_count += 1
        self.last_failed = _utcnow()
        # Unhealthy after 3 consecutive failures
        if self.fail_count >= 3:
            self.healthy = False

    def mark_success(self) -> None:
        self.success_count += 1
        self.fail_count = 0
        self.healthy = True

    def should_retry(self, cooldown_minutes: int = 10) -> bool:
        """Whether an unhealthy proxy has sat out its cooldown."""
        if self.healthy or not self.last_failed:
            return True
        return _utcnow() - self.last_failed > timedelta(minutes=cooldown_minutes)


class ProxyManager:
    """Rotating proxy pool with automatic failover.

    Proxies failing three times in a row are skipped until their cooldown
    passes. When every proxy is cooling down the pool is reset.
    """

    def __init__(
        self,
        proxies: List[str],
        strategy: str = "random",
        cooldown_minutes: int = 10,
    ):
        """Initialize proxy manager.

        Args:
            proxies: Proxy URLs or ip:port:user:password strings
            strategy: Selection strategy ('random' or 'round-robin')
            cooldown_minutes: Minutes before a failed proxy is retried
        """
        self.proxies: List[ProxyEntry] = []
        for raw in proxies:
            try:
                self.proxies.append(ProxyEntry.parse(raw))
            except ValueError as e:
                logger.warning("proxy_entry_skipped", error=str(e))
        self.strategy = strategy
        self.cooldown_minutes = cooldown_minutes
        self._index = 0

    def get_proxy(self) -> Optional[ProxyEntry]:
        """Pick the next proxy, or None when the pool is empty."""
        if not self.proxies:
            return None

        available = [p for p in self.proxies if p.should_retry(self.cooldown_minutes)]
        if not available:
            logger.warning("proxy_pool_exhausted", total=len(self.proxies))
            self.reset_all()
            available = self.proxies

        if self.strategy == "random":
            proxy = random.choice(available)
        else:  # round-robin
            proxy = available[self._index % len(available)]
            self._index = (self._index + 1) % len(available)

        proxy.last_used = _utcnow()
        return proxy

    def _find(self, server: str) -> Optional[ProxyEntry]:
        for p in self.proxies:
            if p.server == server:
                return p
        return None

    def mark_failed(self, server: str) -> None:
        proxy = self._find(server)
        if proxy:
            proxy.mark_failed()
            logger.info("proxy_marked_failed", proxy=proxy.label, fail_count=proxy.fail_count)

    def mark_success(self, server: str) -> None:
        proxy = self._find(server)
        if proxy:
            proxy.mark_success()

    def get_stats(self) -> dict:
        """Get statistics about proxy pool health."""
        total = len(self.proxies)
        healthy = sum(1 for p in self.proxies if p.healthy)
        total_requests = sum(p.success_count + p.fail_count for p in self.proxies)
        success_rate = 0.0
        if total_requests > 0:
            success_rate = sum(p.success_count for p in self.proxies) / total_requests * 100

        return {
            "total_proxies": total,
            "healthy_proxies": healthy,
            "unhealthy_proxies": total - healthy,
            "total_requests": total_requests,
            "success_rate_percent": round(success_rate, 2),
        }

    def reset_all(self) -> None:
        for p in self.proxies:
            p.healthy = True
            p.fail_count = 0


class NoProxyManager(ProxyManager):
    """Proxy manager for direct connections."""

    def __init__(self):
        super().__init__([])

    def get_proxy(self) -> Optional[ProxyEntry]:
        return None


async def check_proxy(proxy: ProxyEntry, timeout: float = 15.0) -> Optional[str]:
    """Resolve the egress IP seen through a proxy.

    Args:
        proxy: Proxy to test
        timeout: Request timeout in seconds

    Returns:
        The egress IP, or None when the proxy could not be used
    """
    try:
        async with httpx.AsyncClient(proxy=proxy.to_httpx(), timeout=timeout) as client:
            response = await client.get(EGRESS_CHECK_URL)
            response.raise_for_status()
            ip = response.json().get("ip")
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("proxy_check_failed", proxy=proxy.label, error=str(e))
        return None

    logger.info("proxy_check_ok", proxy=proxy.label, egress_ip=ip)
    return ip
