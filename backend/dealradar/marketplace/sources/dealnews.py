"""DealNews adapter.

DealNews publishes one RSS feed per category plus a "today's edition" feed.
Item titles follow the "Product for $XX at Store" convention.
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
    SourceConfig,
)


DEALNEWS_CONFIG = SourceConfig(
    name=MarketplaceSource.DEALNEWS,
    rate_limit=RateLimitConfig(requests_per_minute=10, requests_per_day=1000),
    categories=[
        DealCategory.LAPTOPS,
        DealCategory.PHONES,
        DealCategory.TVS,
        DealCategory.GAMING,
        DealCategory.AUDIO,
        DealCategory.COMPUTERS,
        DealCategory.TABLETS,
    ],
    fetch_interval=30,
    priority=8,
)

DEALNEWS_FEEDS: Dict[str, str] = {
    "laptops": "https://www.dealnews.com/rss/c196/Laptops/",
    "phones": "https://www.dealnews.com/rss/c474/Cell-Phones/",
    "tvs": "https://www.dealnews.com/rss/c41/TVs/",
    "gaming": "https://www.dealnews.com/rss/c39/Video-Games/",
    "audio": "https://www.dealnews.com/rss/c475/Headphones/",
    "computers": "https://www.dealnews.com/rss/c38/Computers/",
    "tablets": "https://www.dealnews.com/rss/c495/Tablets/",
    "all": "https://www.dealnews.com/rss/todays-edition/",
}

# Categories merged by fetch_all_categories()
ALL_CATEGORY_SWEEP = ["laptops", "phones", "tvs", "gaming", "audio"]

ORIGINAL_PRICE_PATTERN = re.compile(r"(?:was|list|reg|msrp|orig)\s*(\$[\d,]+\.?\d*)", re.IGNORECASE)
STORE_PATTERN = re.compile(r"\bat\s+([A-Za-z][A-Za-z\s&'.]+?)(?:\.|,|$)", re.IGNORECASE)
# Keyword is case-insensitive, the code itself must be upper-case/digits
COUPON_PATTERN = re.compile(r"(?i:code|coupon)[:\s]+[\"']?([A-Z0-9]+)[\"']?")
# Listing URLs end in /123456.html or /123456/
DEALNEWS_ID_PATTERN = r"/(\d+)(?:/|\.html)"


def _category_key(category: Optional[str]) -> Optional[str]:
    if category is None:
        return None
    return category.value if isinstance(category, DealCategory) else str(category)


class DealNewsAdapter(SourceAdapter):
    """Editor-curated deals from dealnews.com."""

    def __init__(self, config: SourceConfig = DEALNEWS_CONFIG, **kwargs):
        super().__init__(config, **kwargs)

    def feed_url(self, category: Optional[str] = None) -> str:
        key = _category_key(category)
        return DEALNEWS_FEEDS.get(key or "all", DEALNEWS_FEEDS["all"])

    async def fetch_deals(self, category: Optional[str] = None) -> FetchResult:
        url = self.feed_url(category)
        return await self._collect(lambda: self._fetch_feed(url))

    async def search_deals(self, query: str) -> FetchResult:
        """DealNews has no search feed, so filter today's edition locally."""
        result = await self.fetch_deals()
        query_lower = query.lower()

        result.deals = [
            deal
            for deal in result.deals
            if query_lower in deal.title.lower()
            or (deal.description and query_lower in deal.description.lower())
        ]
        return result

    async def fetch_all_categories(self) -> FetchResult:
        """Fetch the main category feeds concurrently and merge them by URL."""
        started = time.monotonic()
        results = await asyncio.gather(
            *(self.fetch_deals(category) for category in ALL_CATEGORY_SWEEP),
            return_exceptions=True,
        )

        all_deals: List[RawDeal] = []
        errors: List[str] = []
        for result in results:
            if isinstance(result, BaseException):
                errors.append(str(result))
                continue
            all_deals.extend(result.deals)
            if result.error:
                errors.append(result.error)

        # Same listing often shows up in several category feeds
        unique: Dict[str, RawDeal] = {}
        for deal in all_deals:
            unique[deal.source_url] = deal

        merged = list(unique.values())
        self.logger.info("dealnews_categories_merged", count=len(merged), errors=len(errors))

        return self.executor.make_result(merged, started, error="; ".join(errors) or None)

    async def _fetch_feed(self, url: str) -> List[RawDeal]:
        xml = await self._get_text(url)
        return self.parse_rss(xml)

    def parse_rss(self, xml: str) -> List[RawDeal]:
        """Turn a DealNews RSS document into raw deals."""
        deals: List[RawDeal] = []

        for item in feeds.iter_items(xml):
            title = feeds.extract_tag(item, "title")
            link = feeds.extract_tag(item, "link")
            description = feeds.extract_tag(item, "description")
            pub_date = feeds.extract_tag(item, "pubDate")

            price = feeds.find_price(title)

            text = f"{title} {description}"
            original_match = ORIGINAL_PRICE_PATTERN.search(text)
            original_price = feeds.parse_price(original_match.group(1)) if original_match else 0.0

            store_match = STORE_PATTERN.search(title)
            store = store_match.group(1).strip() if store_match else "Unknown"

            coupon_match = COUPON_PATTERN.search(text)
            coupon_code = coupon_match.group(1) if coupon_match else None

            if not (title and link and price > 0):
                continue

            deals.append(
                RawDeal(
                    source_id=feeds.generate_id("dn", link, DEALNEWS_ID_PATTERN),
                    source=MarketplaceSource.DEALNEWS,
                    source_url=link,
                    title=feeds.clean_html(title),
                    description=feeds.clean_html(description),
                    image_url=feeds.find_image(description),
                    current_price=price,
                    original_price=original_price or None,
                    currency="USD",
                    condition=DealCondition.NEW,
                    seller_name=store,
                    is_verified_seller=True,
                    posted_at=feeds.parse_feed_date(pub_date) or datetime.now(),
                    coupon_code=coupon_code,
                    promo_details=f"Use code: {coupon_code}" if coupon_code else None,
                )
            )

        return deals
