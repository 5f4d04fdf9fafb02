"""Health check schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class CacheStatsResponse(BaseModel):
    size: int
    keys: List[str] = []
    total_hits: int = 0
    oldest_entry: Optional[datetime] = None


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str
    environment: str
    version: str
    scheduler_running: bool = False
    cache: CacheStatsResponse
