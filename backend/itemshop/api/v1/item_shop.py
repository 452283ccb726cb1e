"""Item shop catalog endpoints."""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from itemshop.core.exceptions import NotFoundError, ScrapeInProgressError, SnapshotUnavailableError
from itemshop.dependencies import get_service, get_store, update_rate_limit
from itemshop.schemas import (
    ApiResponse,
    CatalogSnapshot,
    CategorySchema,
    CategorySummary,
    SearchResult,
    StatsResponse,
)
from itemshop.scrapers.scraper_service import ScraperService
from itemshop.services.catalog_store import CatalogStore

logger = structlog.get_logger(__name__)

router = APIRouter()


def _require_snapshot(store: CatalogStore) -> CatalogSnapshot:
    try:
        return store.require()
    except SnapshotUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


@router.get("", response_model=ApiResponse[CatalogSnapshot])
async def get_catalog(store: CatalogStore = Depends(get_store)):
    """Return the current catalog snapshot in the standard envelope."""
    snapshot = _require_snapshot(store)
    return ApiResponse(data=snapshot, last_update=store.last_update)


@router.get("/clean", response_model=CatalogSnapshot)
async def get_clean_catalog(store: CatalogStore = Depends(get_store)):
    """Return the bare snapshot document, exactly as persisted."""
    return _require_snapshot(store)


@router.get("/categories", response_model=ApiResponse[List[CategorySummary]])
async def list_categories(store: CatalogStore = Depends(get_store)):
    _require_snapshot(store)
    return ApiResponse(data=store.list_categories(), last_update=store.last_update)


@router.get("/categories/{name}", response_model=ApiResponse[CategorySchema])
async def get_category(name: str, store: CatalogStore = Depends(get_store)):
    """Return one category, matched by name without regard to case."""
    _require_snapshot(store)
    try:
        category = store.get_category(name)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return ApiResponse(data=category, last_update=store.last_update)


@router.get("/search", response_model=ApiResponse[SearchResult])
async def search_products(
    q: Optional[str] = Query(None, description="Text to look for in product names"),
    store: CatalogStore = Depends(get_store),
):
    """Search products by name or English title across all categories."""
    _require_snapshot(store)
    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query parameter 'q' is required, e.g. ?q=renegade",
        )
    return ApiResponse(data=store.search(q), last_update=store.last_update)


@router.get("/stats", response_model=ApiResponse[StatsResponse])
async def get_stats(store: CatalogStore = Depends(get_store)):
    _require_snapshot(store)
    return ApiResponse(data=store.stats(), last_update=store.last_update)


@router.post(
    "/update",
    response_model=ApiResponse[Dict[str, Any]],
    dependencies=[Depends(update_rate_limit)],
)
async def trigger_update(service: ScraperService = Depends(get_service)):
    """Run a scrape immediately and replace the stored snapshot.

    Returns 409 while another scrape is running and 502 when every
    attempt failed.
    """
    try:
        stats = await service.run()
    except ScrapeInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception as e:
        logger.error("manual_update_failed", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Scrape failed after all retries, try again later",
        )

    return ApiResponse(
        data=stats,
        last_update=service.store.last_update,
        message="Catalog updated",
    )
