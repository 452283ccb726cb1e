"""FastAPI dependency injection providers."""

from collections import OrderedDict

from fastapi import HTTPException, Request, status

from itemshop.config import settings
from itemshop.scrapers.scraper_service import ScraperService, get_scraper_service
from itemshop.scrapers.utils.rate_limiter import TokenBucket
from itemshop.services.catalog_store import CatalogStore, get_catalog_store


def get_store() -> CatalogStore:
    """Provide the catalog store.

    Usage:
        @router.get("/item-shop")
        async def read(store: CatalogStore = Depends(get_store)):
            return store.require()
    """
    return get_catalog_store()


def get_service() -> ScraperService:
    return get_scraper_service()


class RateLimitDependency:
    """Per-client request limit backed by one token bucket per IP.

    A full bucket allows ``requests`` calls in a burst, refilled evenly
    over ``window_seconds``. Excess calls get 429 with Retry-After.

    Buckets that have refilled completely carry no state, so they are
    dropped whenever the map grows past ``max_clients``. If every bucket
    is still in use, the least recently seen clients are dropped.
    """

    def __init__(self, requests: int, window_seconds: int, scope: str = "api", max_clients: int = 10000):
        self.requests = requests
        self.window_seconds = window_seconds
        self.scope = scope
        self.max_clients = max_clients
        self._buckets: "OrderedDict[str, TokenBucket]" = OrderedDict()

    def _bucket(self, client: str) -> TokenBucket:
        bucket = self._buckets.get(client)
        if bucket is not None:
            self._buckets.move_to_end(client)
            return bucket

        if len(self._buckets) >= self.max_clients:
            self._evict()
        bucket = TokenBucket(rate=self.requests / self.window_seconds, capacity=float(self.requests))
        self._buckets[client] = bucket
        return bucket

    def _evict(self) -> None:
        for client, bucket in list(self._buckets.items()):
            if bucket.retry_after(bucket.capacity) == 0.0:
                del self._buckets[client]
        # Trim to 90% so a burst of new clients does not sweep on every call
        target = self.max_clients - max(1, self.max_clients // 10)
        while len(self._buckets) > target:
            self._buckets.popitem(last=False)

    def reset(self) -> None:
        self._buckets.clear()

    async def __call__(self, request: Request) -> None:
        client = request.client.host if request.client else "unknown"
        bucket = self._bucket(client)
        if not bucket.try_acquire():
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many requests for {self.scope}, try again later",
                headers={"Retry-After": str(int(bucket.retry_after()) + 1)},
            )


general_rate_limit = RateLimitDependency(
    settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS, scope="item shop API"
)
update_rate_limit = RateLimitDependency(
    settings.UPDATE_RATE_LIMIT_REQUESTS, settings.UPDATE_RATE_LIMIT_WINDOW_SECONDS, scope="updates"
)
