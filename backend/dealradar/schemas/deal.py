"""Deal Pydantic schemas for API responses.

The marketplace layer works with plain dataclasses; these models are read
from them with ``from_attributes`` and define the JSON shape of the API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from dealradar.marketplace.types import DealCategory, DealCondition, MarketplaceSource


class SellerBrief(BaseModel):
    """Seller information for deal responses."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    rating: float
    reviews: int
    verified: bool


class LocationBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    city: str
    state: str
    distance: Optional[float] = None


class PopularityBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    upvotes: int
    downvotes: int
    comments: int
    score: float


class AIScoreResponse(BaseModel):
    """Explainable deal score."""

    model_config = ConfigDict(from_attributes=True)

    overall: int
    price_score: int
    seller_score: int
    timing_score: int
    community_score: int
    verdict: str
    reasons: List[str] = []


class DealResponse(BaseModel):
    """Normalized deal as returned by the deals endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    source_id: str
    source: MarketplaceSource
    source_url: str
    title: str
    description: str
    category: DealCategory
    image_url: str
    images: List[str] = []
    current_price: float
    original_price: float
    discount: int
    currency: str
    condition: DealCondition
    condition_label: str
    in_stock: bool
    quantity: Optional[int] = None
    seller: SellerBrief
    location: Optional[LocationBrief] = None
    posted_at: datetime
    expires_at: Optional[datetime] = None
    fetched_at: datetime
    popularity: PopularityBrief
    coupon_code: Optional[str] = None
    promo_details: Optional[str] = None
    all_time_low: Optional[float] = None
    is_all_time_low: bool = False
    ai_score: Optional[AIScoreResponse] = None


class SourceStatusResponse(BaseModel):
    """How one source fared during an aggregation."""

    model_config = ConfigDict(from_attributes=True)

    name: MarketplaceSource
    count: int
    success: bool
    error: Optional[str] = None


class AggregatedDealsResponse(BaseModel):
    """Payload of the listing, hot and search endpoints."""

    deals: List[DealResponse]
    sources: List[SourceStatusResponse]
    total: int
    total_after_dedup: int
    total_fetched: int
    fetch_time: int
    cached: bool
    query: Optional[str] = None


class SourceStatsResponse(BaseModel):
    """Quota usage of one source."""

    name: str
    source: str
    enabled: bool
    configured: bool
    requests_today: int
    remaining_today: int


class CityResponse(BaseModel):
    code: str
    name: str
    state: str


class SourcesOverviewResponse(BaseModel):
    """Payload of the sources endpoint."""

    sources: List[SourceStatsResponse]
    cities: List[CityResponse]
    ebay_configured: bool


class RefreshResponse(BaseModel):
    message: str
    deals_count: int
    sources: List[SourceStatusResponse]
    fetch_time: int


class CategoryInfo(BaseModel):
    name: DealCategory
    label: str
    icon: str
