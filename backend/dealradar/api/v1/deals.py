"""Deals API endpoints.

Live deals straight from the marketplace aggregator. Caching happens in the
aggregator itself, so these handlers only translate query parameters and
shape the response.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from dealradar.dependencies import get_aggregator
from dealradar.marketplace import MarketplaceAggregator
from dealradar.marketplace.types import AggregatorResult, DealCategory
from dealradar.schemas import (
    AggregatedDealsResponse,
    ApiResponse,
    CategoryInfo,
    CityResponse,
    DealResponse,
    RefreshResponse,
    SourcesOverviewResponse,
    SourceStatsResponse,
    SourceStatusResponse,
)

router = APIRouter()

CATEGORY_CATALOG = [
    CategoryInfo(name=DealCategory.LAPTOPS, label="Laptops", icon="💻"),
    CategoryInfo(name=DealCategory.PHONES, label="Phones", icon="📱"),
    CategoryInfo(name=DealCategory.TVS, label="TVs", icon="📺"),
    CategoryInfo(name=DealCategory.GAMING, label="Gaming", icon="🎮"),
    CategoryInfo(name=DealCategory.AUDIO, label="Audio", icon="🎧"),
    CategoryInfo(name=DealCategory.WEARABLES, label="Wearables", icon="⌚"),
    CategoryInfo(name=DealCategory.CAMERAS, label="Cameras", icon="📷"),
    CategoryInfo(name=DealCategory.COMPUTERS, label="Desktops", icon="🖥️"),
    CategoryInfo(name=DealCategory.TABLETS, label="Tablets", icon="📟"),
    CategoryInfo(name=DealCategory.ACCESSORIES, label="Accessories", icon="🔌"),
]


def parse_sources(sources: Optional[str]) -> Optional[List[str]]:
    """Split a comma-separated ``sources`` parameter. Empty means defaults."""
    if not sources:
        return None
    names = [name.strip() for name in sources.split(",") if name.strip()]
    return names or None


def _to_response(result: AggregatorResult) -> AggregatedDealsResponse:
    return AggregatedDealsResponse(
        deals=[DealResponse.model_validate(deal) for deal in result.deals],
        sources=[SourceStatusResponse.model_validate(status) for status in result.sources],
        total=result.total_after_dedup,
        total_after_dedup=result.total_after_dedup,
        total_fetched=result.total_fetched,
        fetch_time=result.fetch_time,
        cached=result.cached,
        query=result.query,
    )


@router.get("", response_model=ApiResponse[AggregatedDealsResponse])
async def list_deals(
    category: Optional[str] = Query(None, description="Category filter (e.g. laptops, phones)"),
    sources: Optional[str] = Query(None, description="Comma-separated source names"),
    city: Optional[str] = Query(None, description="Craigslist city code"),
    limit: int = Query(30, ge=1, le=200, description="Maximum number of deals"),
    aggregator: MarketplaceAggregator = Depends(get_aggregator),
):
    """List live deals from every selected marketplace.

    Deals are normalized, deduplicated and ranked by score. A failing
    source is reported in ``sources`` and does not fail the request.
    """
    result = await aggregator.fetch_deals(
        sources=parse_sources(sources),
        category=category,
        city=city,
        limit=limit,
        use_cache=True,
    )
    return ApiResponse(data=_to_response(result))


@router.get("/hot", response_model=ApiResponse[AggregatedDealsResponse])
async def hot_deals(
    limit: int = Query(15, ge=1, le=50, description="Number of hot deals to return"),
    aggregator: MarketplaceAggregator = Depends(get_aggregator),
):
    """High-scoring deals from the curated deal aggregators."""
    result = await aggregator.get_hot_deals(limit=limit)
    return ApiResponse(data=_to_response(result))


@router.get("/search", response_model=ApiResponse[AggregatedDealsResponse])
async def search_deals(
    q: str = Query(..., min_length=1, description="Search query"),
    sources: Optional[str] = Query(None, description="Comma-separated source names"),
    city: Optional[str] = Query(None, description="Craigslist city code"),
    limit: int = Query(30, ge=1, le=200, description="Maximum number of deals"),
    aggregator: MarketplaceAggregator = Depends(get_aggregator),
):
    """Search every selected marketplace for ``q``."""
    result = await aggregator.search(
        q,
        sources=parse_sources(sources),
        city=city,
        limit=limit,
        use_cache=True,
    )
    return ApiResponse(data=_to_response(result))


@router.get("/sources", response_model=ApiResponse[SourcesOverviewResponse])
async def list_sources(aggregator: MarketplaceAggregator = Depends(get_aggregator)):
    """Available sources with quota usage, Craigslist cities and eBay status."""
    return ApiResponse(
        data=SourcesOverviewResponse(
            sources=[SourceStatsResponse(**stats) for stats in aggregator.get_source_stats()],
            cities=[CityResponse(**city) for city in aggregator.get_cities()],
            ebay_configured=aggregator.is_ebay_configured(),
        )
    )


@router.get("/categories", response_model=ApiResponse[List[CategoryInfo]])
async def list_categories():
    """Browsable deal categories."""
    return ApiResponse(data=CATEGORY_CATALOG)


@router.post("/refresh", response_model=ApiResponse[RefreshResponse])
async def refresh_deals(aggregator: MarketplaceAggregator = Depends(get_aggregator)):
    """Clear the cache and fetch the default listing again."""
    aggregator.clear_cache()
    result = await aggregator.fetch_deals(use_cache=False)

    return ApiResponse(
        data=RefreshResponse(
            message="Cache cleared and deals refreshed",
            deals_count=len(result.deals),
            sources=[SourceStatusResponse.model_validate(status) for status in result.sources],
            fetch_time=result.fetch_time,
        )
    )
