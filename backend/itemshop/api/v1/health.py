"""Health check endpoint."""

import time

from fastapi import APIRouter, Depends, Request

from itemshop.dependencies import get_store
from itemshop.schemas import HealthCheckResponse
from itemshop.services.catalog_store import CatalogStore

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request, store: CatalogStore = Depends(get_store)):
    """Return service health.

    Status is "ok" when a snapshot is available and "degraded" otherwise.
    """
    started_at = getattr(request.app.state, "started_at", None)
    uptime = time.monotonic() - started_at if started_at is not None else 0.0

    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is not None:
        scheduler_status = {"running": scheduler.is_running(), "jobs": scheduler.get_jobs_status()}
    else:
        scheduler_status = {"running": False, "jobs": {}}

    data_available = store.get_or_load() is not None
    return HealthCheckResponse(
        status="ok" if data_available else "degraded",
        data_available=data_available,
        last_update=store.last_update,
        uptime_seconds=round(uptime, 2),
        scheduler=scheduler_status,
    )
