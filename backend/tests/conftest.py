"""Pytest configuration and shared fixtures."""

import os

# Must be set before dealradar.config builds its settings
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest

from dealradar.marketplace.normalizer import normalize_deal
from dealradar.marketplace.sources.base import SourceAdapter
from dealradar.marketplace.types import (
    DealCondition,
    FetchResult,
    MarketplaceSource,
    NormalizedDeal,
    RateLimitConfig,
    RawDeal,
    SourceConfig,
)


FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def source_config() -> SourceConfig:
    """A roomy config so pacing and quotas only matter when a test wants them."""
    return SourceConfig(
        name=MarketplaceSource.SLICKDEALS,
        rate_limit=RateLimitConfig(requests_per_minute=600, requests_per_day=1000),
    )


@pytest.fixture
def recording_sleep():
    """Stand-in for asyncio.sleep; requested delays end up in ``.calls``."""
    calls: List[float] = []

    async def sleep(seconds: float) -> None:
        calls.append(seconds)

    sleep.calls = calls
    return sleep


def make_raw_deal(**overrides: Any) -> RawDeal:
    """Build a RawDeal with sensible defaults."""
    fields: Dict[str, Any] = {
        "source_id": "sd-1",
        "source": MarketplaceSource.SLICKDEALS,
        "source_url": "https://example.com/deal/1",
        "title": "Generic Widget",
        "current_price": 100.0,
        "condition": DealCondition.NEW,
        "posted_at": FIXED_NOW,
    }
    fields.update(overrides)
    return RawDeal(**fields)


def make_deal(now: Optional[datetime] = None, **overrides: Any) -> NormalizedDeal:
    """Normalize a RawDeal built from overrides."""
    return normalize_deal(make_raw_deal(**overrides), now=now or FIXED_NOW)


def make_result(
    source: MarketplaceSource,
    deals: Optional[List[RawDeal]] = None,
    success: bool = True,
    error: Optional[str] = None,
) -> FetchResult:
    return FetchResult(
        source=source,
        deals=deals or [],
        fetched_at=FIXED_NOW,
        duration=5,
        success=success,
        error=error,
    )


def hours_ago(hours: float, now: datetime = FIXED_NOW) -> datetime:
    return now - timedelta(hours=hours)


class FakeAdapter(SourceAdapter):
    """Adapter returning canned deals, a failed result, or raising."""

    def __init__(
        self,
        source: MarketplaceSource,
        deals: Optional[List[RawDeal]] = None,
        error: Optional[str] = None,
        raises: Optional[Exception] = None,
    ):
        super().__init__(
            SourceConfig(
                name=source,
                rate_limit=RateLimitConfig(requests_per_minute=600, requests_per_day=1000),
            )
        )
        self.deals = deals or []
        self.error = error
        self.raises = raises
        self.fetch_calls: List[Optional[str]] = []
        self.search_calls: List[str] = []

    def _result(self) -> FetchResult:
        if self.raises is not None:
            raise self.raises
        if self.error:
            return make_result(self.name, [], success=False, error=self.error)
        return make_result(self.name, self.deals)

    async def fetch_deals(self, category: Optional[str] = None) -> FetchResult:
        self.fetch_calls.append(category)
        return self._result()

    async def search_deals(self, query: str) -> FetchResult:
        self.search_calls.append(query)
        return self._result()
