"""FastAPI dependency injection providers."""

from typing import Optional

from fastapi import Request

from dealradar.marketplace import MaintenanceScheduler, MarketplaceAggregator


def get_aggregator(request: Request) -> MarketplaceAggregator:
    """Return the aggregator built at startup.

    Usage:
        @router.get("/deals")
        async def list_deals(aggregator: MarketplaceAggregator = Depends(get_aggregator)):
            return await aggregator.fetch_deals()
    """
    return request.app.state.aggregator


def get_scheduler(request: Request) -> Optional[MaintenanceScheduler]:
    """Maintenance scheduler, or None when it is disabled (test environment)."""
    return getattr(request.app.state, "scheduler", None)
