"""Marketplace aggregation: sources, normalization, scoring and caching.

build_aggregator() is the composition root: it creates the adapters and the
cache once from Settings and wires them into a MarketplaceAggregator.
"""

from typing import Optional

import httpx

from dealradar.config import Settings
from dealradar.marketplace.aggregator import MarketplaceAggregator
from dealradar.marketplace.cache import DealCache
from dealradar.marketplace.scheduler import MaintenanceScheduler
from dealradar.marketplace.sources import (
    CraigslistAdapter,
    DealNewsAdapter,
    EbayAdapter,
    SlickdealsAdapter,
)


def build_aggregator(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> MarketplaceAggregator:
    """Build the aggregator and its adapters from settings.

    Args:
        settings: Application settings
        http_client: Optional shared httpx client for every adapter

    Returns:
        Ready-to-use MarketplaceAggregator
    """
    common = {
        "http_client": http_client,
        "timeout": settings.SOURCE_REQUEST_TIMEOUT,
        "user_agent": settings.HTTP_USER_AGENT,
    }

    adapters = [
        SlickdealsAdapter(**common),
        DealNewsAdapter(**common),
        # Craigslist keeps its browser-like User-Agent
        CraigslistAdapter(
            default_city=settings.CRAIGSLIST_DEFAULT_CITY,
            http_client=http_client,
            timeout=settings.SOURCE_REQUEST_TIMEOUT,
        ),
        EbayAdapter(
            app_id=settings.EBAY_APP_ID,
            app_secret=settings.EBAY_APP_SECRET,
            **common,
        ),
    ]

    return MarketplaceAggregator(
        adapters=adapters,
        cache=DealCache(default_ttl=settings.CACHE_DEFAULT_TTL_SECONDS),
        deals_ttl=settings.DEALS_CACHE_TTL_SECONDS,
        search_ttl=settings.SEARCH_CACHE_TTL_SECONDS,
        hot_deals_min_score=settings.HOT_DEALS_MIN_SCORE,
    )


def build_scheduler(aggregator: MarketplaceAggregator, settings: Settings) -> MaintenanceScheduler:
    """Maintenance jobs for the aggregator's cache and adapters."""
    return MaintenanceScheduler(
        cache=aggregator.cache,
        adapters=aggregator.adapters.values(),
        sweep_interval_seconds=settings.CACHE_SWEEP_INTERVAL_SECONDS,
    )


__all__ = [
    "MarketplaceAggregator",
    "DealCache",
    "MaintenanceScheduler",
    "build_aggregator",
    "build_scheduler",
]
