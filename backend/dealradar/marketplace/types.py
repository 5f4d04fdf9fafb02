"""Unified marketplace data structures.

Every source adapter emits RawDeal records; the normalizer turns them into
NormalizedDeal records, which is the only shape the aggregator and the API
layer deal with.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar


T = TypeVar("T")


class MarketplaceSource(str, Enum):
    AMAZON = "amazon"
    EBAY = "ebay"
    BESTBUY = "bestbuy"
    WALMART = "walmart"
    TARGET = "target"
    NEWEGG = "newegg"
    SLICKDEALS = "slickdeals"
    DEALNEWS = "dealnews"
    TECHBARGAINS = "techbargains"
    CRAIGSLIST = "craigslist"
    FACEBOOK = "facebook"
    OFFERUP = "offerup"


class DealCondition(str, Enum):
    NEW = "new"
    LIKE_NEW = "like_new"
    REFURBISHED = "refurbished"
    USED = "used"
    FOR_PARTS = "for_parts"


class DealCategory(str, Enum):
    LAPTOPS = "laptops"
    PHONES = "phones"
    TVS = "tvs"
    GAMING = "gaming"
    AUDIO = "audio"
    WEARABLES = "wearables"
    CAMERAS = "cameras"
    COMPUTERS = "computers"
    TABLETS = "tablets"
    ACCESSORIES = "accessories"
    OTHER = "other"


# Local marketplaces, where brand-new premium items are a fraud signal
LOCAL_SOURCES = (MarketplaceSource.CRAIGSLIST, MarketplaceSource.FACEBOOK)


@dataclass(frozen=True)
class RawLocation:
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


@dataclass(frozen=True)
class RawDeal:
    """A deal exactly as one source reported it."""

    source_id: str  # Source-scoped identifier
    source: MarketplaceSource
    source_url: str
    title: str
    current_price: float
    currency: str = "USD"
    condition: DealCondition = DealCondition.NEW
    original_price: Optional[float] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    images: Optional[List[str]] = None
    in_stock: Optional[bool] = None
    quantity: Optional[int] = None

    seller_name: Optional[str] = None
    seller_rating: Optional[float] = None  # 0-5 scale
    seller_reviews: Optional[int] = None
    is_verified_seller: Optional[bool] = None

    location: Optional[RawLocation] = None

    posted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    # Community signals (deal aggregators)
    upvotes: Optional[int] = None
    downvotes: Optional[int] = None
    comment_count: Optional[int] = None

    coupon_code: Optional[str] = None
    promo_details: Optional[str] = None

    raw_data: Optional[Dict[str, Any]] = None


@dataclass
class Seller:
    name: str = "Unknown Seller"
    rating: float = 0.0
    reviews: int = 0
    verified: bool = False


@dataclass
class Location:
    city: str = ""
    state: str = ""
    distance: Optional[float] = None  # Miles from user, filled in when known


@dataclass
class Popularity:
    upvotes: int = 0
    downvotes: int = 0
    comments: int = 0
    score: float = 0.0


@dataclass
class AIScore:
    """Explainable deal-quality score (all scores are 0-100)."""

    overall: int
    price_score: int
    seller_score: int
    timing_score: int
    community_score: int
    verdict: str
    reasons: List[str] = field(default_factory=list)


@dataclass
class NormalizedDeal:
    """Canonical deal record shared by every source."""

    id: str
    source_id: str
    source: MarketplaceSource
    source_url: str

    title: str
    description: str
    category: DealCategory
    image_url: str
    images: List[str]

    current_price: float
    original_price: float
    discount: int  # Percentage, 0-100
    currency: str

    condition: DealCondition
    condition_label: str

    in_stock: bool
    quantity: Optional[int]

    seller: Seller
    location: Optional[Location]

    posted_at: datetime
    expires_at: Optional[datetime]
    fetched_at: datetime

    popularity: Popularity

    coupon_code: Optional[str] = None
    promo_details: Optional[str] = None

    all_time_low: Optional[float] = None
    is_all_time_low: bool = False

    ai_score: Optional[AIScore] = None


@dataclass
class RateLimitInfo:
    remaining: int
    reset_at: datetime


@dataclass
class FetchResult:
    """Outcome of one adapter call. Failures are data, not exceptions."""

    source: MarketplaceSource
    deals: List[RawDeal]
    fetched_at: datetime
    duration: int  # ms
    success: bool
    error: Optional[str] = None
    rate_limit: Optional[RateLimitInfo] = None


@dataclass(frozen=True)
class RateLimitConfig:
    requests_per_minute: int
    requests_per_day: int


@dataclass(frozen=True)
class SourceConfig:
    name: MarketplaceSource
    rate_limit: RateLimitConfig
    enabled: bool = True
    api_key: Optional[str] = None
    categories: List[DealCategory] = field(default_factory=list)
    fetch_interval: int = 30  # Minutes between scheduled fetches
    priority: int = 0  # Higher = fetch first


@dataclass
class SourceStatus:
    name: MarketplaceSource
    count: int
    success: bool
    error: Optional[str] = None


@dataclass
class AggregatorResult:
    deals: List[NormalizedDeal]
    sources: List[SourceStatus]
    total_fetched: int
    total_after_dedup: int
    fetch_time: int  # ms
    cached: bool = False
    query: Optional[str] = None


@dataclass
class CacheEntry(Generic[T]):
    data: T
    cached_at: datetime
    expires_at: datetime
    hits: int = 0
