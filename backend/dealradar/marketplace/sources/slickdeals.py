"""Slickdeals adapter.

Reads the Slickdeals front-page RSS feed (and the RSS flavour of its search
page) and mines prices, store names and thumbs-up counts out of the item
text.
"""

import re
from datetime import datetime
from typing import List, Optional

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


SLICKDEALS_CONFIG = SourceConfig(
    name=MarketplaceSource.SLICKDEALS,
    rate_limit=RateLimitConfig(requests_per_minute=10, requests_per_day=1000),
    categories=[
        DealCategory.LAPTOPS,
        DealCategory.PHONES,
        DealCategory.TVS,
        DealCategory.GAMING,
        DealCategory.AUDIO,
    ],
    fetch_interval=15,
    priority=10,
)

ORIGINAL_PRICE_PATTERN = re.compile(
    r"(?:was|reg(?:ular)?\.?|orig(?:inal)?\.?)\s*(\$[\d,]+\.?\d*)", re.IGNORECASE
)
STORE_PATTERN = re.compile(r"(?:at|from|via)\s+([A-Za-z\s]+?)(?:\.|,|\s*-|\s*\[)", re.IGNORECASE)
THUMBS_PATTERN = re.compile(r"(\d+)\s*thumb", re.IGNORECASE)
# Thread URLs look like /f/17000001-product-name
SLICKDEALS_ID_PATTERN = r"/f/(\d+)"


class SlickdealsAdapter(SourceAdapter):
    """Curated community deals from slickdeals.net."""

    RSS_URL = "https://slickdeals.net/newsearch.php?mode=frontpage&searcharea=deals&searchin=first&rss=1"
    SEARCH_URL = "https://slickdeals.net/newsearch.php"

    def __init__(self, config: SourceConfig = SLICKDEALS_CONFIG, **kwargs):
        super().__init__(config, **kwargs)

    async def fetch_deals(self, category: Optional[str] = None) -> FetchResult:
        # The front page feed is not split by category
        return await self._collect(lambda: self._fetch_feed(self.RSS_URL))

    async def search_deals(self, query: str) -> FetchResult:
        params = {"q": query, "searcharea": "deals", "searchin": "first", "rss": "1"}
        return await self._collect(lambda: self._fetch_feed(self.SEARCH_URL, params))

    async def _fetch_feed(self, url: str, params: Optional[dict] = None) -> List[RawDeal]:
        xml = await self._get_text(url, params)
        return self.parse_rss(xml)

    def parse_rss(self, xml: str) -> List[RawDeal]:
        """Turn a Slickdeals RSS document into raw deals.

        Items without a title, a link or a positive price are skipped.
        """
        deals: List[RawDeal] = []

        for item in feeds.iter_items(xml):
            title = feeds.extract_tag(item, "title")
            link = feeds.extract_tag(item, "link")
            description = feeds.extract_tag(item, "description")
            pub_date = feeds.extract_tag(item, "pubDate")

            price = feeds.find_price(f"{title} {description}")

            original_match = ORIGINAL_PRICE_PATTERN.search(description)
            original_price = feeds.parse_price(original_match.group(1)) if original_match else 0.0

            store_match = STORE_PATTERN.search(description)
            store = store_match.group(1).strip() if store_match else "Unknown Store"

            thumbs_match = THUMBS_PATTERN.search(description)
            upvotes = int(thumbs_match.group(1)) if thumbs_match else 0

            if not (title and link and price > 0):
                continue

            deals.append(
                RawDeal(
                    source_id=feeds.generate_id("sd", link, SLICKDEALS_ID_PATTERN),
                    source=MarketplaceSource.SLICKDEALS,
                    source_url=link,
                    title=feeds.clean_html(title),
                    description=feeds.clean_html(description),
                    image_url=feeds.find_image(description),
                    current_price=price,
                    original_price=original_price or None,
                    currency="USD",
                    condition=DealCondition.NEW,
                    seller_name=store or "Unknown Store",
                    is_verified_seller=True,
                    posted_at=feeds.parse_feed_date(pub_date) or datetime.now(),
                    upvotes=upvotes,
                    comment_count=0,
                )
            )

        return deals
