"""Token bucket rate limiting for page loads and API clients."""

import asyncio
import time
from typing import Dict


class TokenBucket:
    """Token bucket algorithm implementation for rate limiting.

    The bucket starts full and refills at a constant rate. Each request
    consumes one token.
    """

    def __init__(self, rate: float, capacity: float):
        """Initialize token bucket.

        Args:
            rate: Tokens per second
            capacity: Maximum tokens in bucket (burst capacity)
        """
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_refill = now

    def try_acquire(self, tokens: float = 1.0) -> bool:
        """Take tokens without waiting.

        Returns:
            True if the tokens were taken, False if the bucket is short
        """
        self._refill()
        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    def retry_after(self, tokens: float = 1.0) -> float:
        """Seconds until the requested tokens will be available."""
        self._refill()
        if self.tokens >= tokens:
            return 0.0
        return (tokens - self.tokens) / self.rate

    async def acquire(self, tokens: float = 1.0) -> None:
        """Acquire tokens from the bucket, waiting if necessary."""
        async with self._lock:
            while not self.try_acquire(tokens):
                await asyncio.sleep(self.retry_after(tokens))


class DomainRateLimiter:
    """Per-domain rate limiter for storefront page loads."""

    # Requests per minute for known domains
    DOMAIN_LIMITS_RPM = {
        "www.fortnite.com": 6,
        "ipinfo.io": 30,
    }

    DEFAULT_RPM = 10

    def __init__(self):
        self._buckets: Dict[str, TokenBucket] = {}

    def _get_bucket(self, domain: str) -> TokenBucket:
        if domain not in self._buckets:
            self._buckets[domain] = _bucket_for_rpm(self.DOMAIN_LIMITS_RPM.get(domain, self.DEFAULT_RPM))
        return self._buckets[domain]

    async def acquire(self, domain: str, tokens: float = 1.0) -> None:
        """Wait until a request to domain is allowed.

        Args:
            domain: Domain name to rate limit
            tokens: Number of tokens to acquire (default 1.0)
        """
        await self._get_bucket(domain).acquire(tokens)

    def set_custom_limit(self, domain: str, rpm: int) -> None:
        """Replace the limit for a domain."""
        self._buckets[domain] = _bucket_for_rpm(rpm)

    def get_current_rate(self, domain: str) -> float:
        """Current limit for a domain in requests per minute."""
        return self._get_bucket(domain).rate * 60.0


def _bucket_for_rpm(rpm: float) -> TokenBucket:
    # Capacity allows small bursts (10% of RPM, min 2)
    return TokenBucket(rate=rpm / 60.0, capacity=max(2.0, rpm / 10.0))
