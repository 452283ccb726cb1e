"""Health check schemas."""

from datetime import datetime
from typing import Any, Dict, Optional

from itemshop.schemas.common import CamelModel


class HealthCheckResponse(CamelModel):
    """Health check response schema."""

    status: str
    data_available: bool
    last_update: Optional[datetime] = None
    uptime_seconds: float
    scheduler: Dict[str, Any] = {}
