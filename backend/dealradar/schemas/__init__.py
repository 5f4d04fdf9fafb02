"""Pydantic schemas for the DealRadar API.

All request/response models are defined here for easy import.
"""

from dealradar.schemas.common import ApiResponse, ErrorDetail, ErrorResponse
from dealradar.schemas.deal import (
    AggregatedDealsResponse,
    AIScoreResponse,
    CategoryInfo,
    CityResponse,
    DealResponse,
    LocationBrief,
    PopularityBrief,
    RefreshResponse,
    SellerBrief,
    SourcesOverviewResponse,
    SourceStatsResponse,
    SourceStatusResponse,
)
from dealradar.schemas.health import CacheStatsResponse, HealthCheckResponse

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    # Deal
    "AggregatedDealsResponse",
    "AIScoreResponse",
    "CategoryInfo",
    "CityResponse",
    "DealResponse",
    "LocationBrief",
    "PopularityBrief",
    "RefreshResponse",
    "SellerBrief",
    "SourcesOverviewResponse",
    "SourceStatsResponse",
    "SourceStatusResponse",
    # Health
    "CacheStatsResponse",
    "HealthCheckResponse",
]
