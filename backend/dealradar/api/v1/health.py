"""Health check endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends

from dealradar import __version__
from dealradar.config import settings
from dealradar.dependencies import get_aggregator, get_scheduler
from dealradar.marketplace import MaintenanceScheduler, MarketplaceAggregator
from dealradar.schemas import CacheStatsResponse, HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    aggregator: MarketplaceAggregator = Depends(get_aggregator),
    scheduler: Optional[MaintenanceScheduler] = Depends(get_scheduler),
):
    """Return service health status.

    Reports cache occupancy and whether the maintenance jobs are running.
    Status is "degraded" when the scheduler should run but does not.
    """
    scheduler_running = bool(scheduler and scheduler.running)
    expects_scheduler = settings.ENVIRONMENT != "test"
    overall_status = "ok" if scheduler_running or not expects_scheduler else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        environment=settings.ENVIRONMENT,
        version=__version__,
        scheduler_running=scheduler_running,
        cache=CacheStatsResponse(**aggregator.get_cache_stats()),
    )
