"""Craigslist adapter.

Local, mostly second-hand listings from per-city RSS search feeds. Prices
live in the title ("iPhone 14 Pro - $800"), which is stripped back to the
product name.
"""

import asyncio
import re
import time
from datetime import datetime
from typing import Dict, List, Optional

from dealradar.marketplace import feeds
from dealradar.marketplace.sources.base import SourceAdapter
from dealradar.marketplace.types import (
    DealCategory,
    DealCondition,
    FetchResult,
    MarketplaceSource,
    RateLimitConfig,
    RawDeal,
    RawLocation,
    SourceConfig,
)


CRAIGSLIST_CONFIG = SourceConfig(
    name=MarketplaceSource.CRAIGSLIST,
    # Be gentle with Craigslist
    rate_limit=RateLimitConfig(requests_per_minute=5, requests_per_day=500),
    categories=[
        DealCategory.LAPTOPS,
        DealCategory.PHONES,
        DealCategory.TVS,
        DealCategory.GAMING,
        DealCategory.AUDIO,
        DealCategory.CAMERAS,
    ],
    fetch_interval=60,
    priority=5,
)

# Ordered by market size; the first MULTI_CITY_FANOUT are used for fan-out
CITIES: List[Dict[str, str]] = [
    {"code": "newyork", "name": "New York", "state": "NY"},
    {"code": "losangeles", "name": "Los Angeles", "state": "CA"},
    {"code": "chicago", "name": "Chicago", "state": "IL"},
    {"code": "sfbay", "name": "San Francisco", "state": "CA"},
    {"code": "seattle", "name": "Seattle", "state": "WA"},
    {"code": "austin", "name": "Austin", "state": "TX"},
    {"code": "miami", "name": "Miami", "state": "FL"},
    {"code": "boston", "name": "Boston", "state": "MA"},
    {"code": "denver", "name": "Denver", "state": "CO"},
    {"code": "atlanta", "name": "Atlanta", "state": "GA"},
    {"code": "tampa", "name": "Tampa", "state": "FL"},
]
MULTI_CITY_FANOUT = 5

# Craigslist section codes
CATEGORY_SECTIONS: Dict[str, str] = {
    "laptops": "sya",  # computers
    "phones": "moa",  # cell phones
    "tvs": "ela",  # electronics
    "gaming": "vga",  # video gaming
    "audio": "ela",
    "wearables": "ela",
    "cameras": "pha",  # photo/video
    "computers": "sya",
    "tablets": "moa",
    "accessories": "ela",
    "other": "sss",  # all for sale
}
DEFAULT_SECTION = "sss"

TITLE_PRICE_PATTERN = re.compile(r"\$[\d,]+")
TITLE_PRICE_SUFFIX = re.compile(r"\s*[-–]\s*\$[\d,]+.*$")
IMAGE_RESOURCE_PATTERN = re.compile(r"resource=\"([^\"]+)\"")


class CraigslistAdapter(SourceAdapter):
    """City-scoped classifieds from craigslist.org."""

    USER_AGENT = "Mozilla/5.0 (compatible; DealRadar/1.0)"

    def __init__(
        self,
        config: SourceConfig = CRAIGSLIST_CONFIG,
        default_city: str = "sfbay",
        **kwargs,
    ):
        kwargs.setdefault("user_agent", self.USER_AGENT)
        super().__init__(config, **kwargs)
        self.default_city = default_city

    @staticmethod
    def get_cities() -> List[Dict[str, str]]:
        return [dict(city) for city in CITIES]

    @staticmethod
    def section_for(category: Optional[str]) -> str:
        key = category.value if isinstance(category, DealCategory) else category
        return CATEGORY_SECTIONS.get(key or "", DEFAULT_SECTION)

    def feed_url(self, city: str, section: str) -> str:
        return f"https://{city}.craigslist.org/search/{section}"

    async def fetch_deals(self, category: Optional[str] = None, city: Optional[str] = None) -> FetchResult:
        city_code = city or self.default_city
        url = self.feed_url(city_code, self.section_for(category))
        return await self._collect(lambda: self._fetch_feed(url, {"format": "rss"}, city_code))

    async def search_deals(self, query: str, city: Optional[str] = None) -> FetchResult:
        city_code = city or self.default_city
        url = self.feed_url(city_code, DEFAULT_SECTION)
        params = {"query": query, "format": "rss"}
        return await self._collect(lambda: self._fetch_feed(url, params, city_code))

    async def fetch_multiple_cities(self, category: Optional[str] = None) -> FetchResult:
        """Fetch the biggest markets concurrently and merge newest-first.

        Per-city failures are tolerated; the merged result only fails when
        every city failed.
        """
        started = time.monotonic()
        cities = CITIES[:MULTI_CITY_FANOUT]

        results = await asyncio.gather(
            *(self.fetch_deals(category, city["code"]) for city in cities),
            return_exceptions=True,
        )

        all_deals: List[RawDeal] = []
        errors: List[str] = []
        succeeded = 0
        for city, result in zip(cities, results):
            if isinstance(result, BaseException):
                errors.append(f"{city['code']}: {result}")
                continue
            if result.success:
                succeeded += 1
            elif result.error:
                errors.append(f"{city['code']}: {result.error}")
            all_deals.extend(result.deals)

        # Newest first; undated listings sink to the bottom
        all_deals.sort(key=lambda d: d.posted_at or datetime.min, reverse=True)

        self.logger.info(
            "craigslist_cities_merged",
            cities=len(cities),
            succeeded=succeeded,
            count=len(all_deals),
        )

        error = "; ".join(errors) if succeeded == 0 and errors else None
        return self.executor.make_result(all_deals, started, error=error)

    async def _fetch_feed(self, url: str, params: dict, city_code: str) -> List[RawDeal]:
        xml = await self._get_text(url, params)
        return self.parse_rss(xml, city_code)

    def parse_rss(self, xml: str, city_code: str) -> List[RawDeal]:
        """Turn a Craigslist RSS document into raw deals for one city."""
        deals: List[RawDeal] = []
        city_info = next(
            (c for c in CITIES if c["code"] == city_code),
            {"code": city_code, "name": city_code, "state": ""},
        )

        for item in feeds.iter_items(xml):
            title = feeds.clean_html(feeds.extract_tag(item, "title"))
            link = feeds.extract_tag(item, "link")
            description = feeds.extract_tag(item, "description")
            pub_date = feeds.extract_tag(item, "dc:date") or feeds.extract_tag(item, "pubDate")

            price_match = TITLE_PRICE_PATTERN.search(title)
            price = feeds.parse_price(price_match.group(0)) if price_match else 0.0

            image_match = IMAGE_RESOURCE_PATTERN.search(item)
            product_title = TITLE_PRICE_SUFFIX.sub("", title).strip()

            if not (product_title and link and price > 0):
                continue

            deals.append(
                RawDeal(
                    source_id=feeds.generate_id("cl", link, r"/(\d+)\.html"),
                    source=MarketplaceSource.CRAIGSLIST,
                    source_url=link,
                    title=product_title,
                    description=feeds.clean_html(description),
                    image_url=image_match.group(1) if image_match else None,
                    current_price=price,
                    currency="USD",
                    condition=DealCondition.USED,
                    is_verified_seller=False,
                    location=RawLocation(city=city_info["name"], state=city_info["state"]),
                    posted_at=feeds.parse_feed_date(pub_date) or datetime.now(),
                )
            )

        return deals
