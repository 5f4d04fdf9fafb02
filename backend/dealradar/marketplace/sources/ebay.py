"""eBay Browse API adapter.

Uses the eBay Browse API with the OAuth 2.0 client credentials flow.
Documentation: https://developer.ebay.com/api-docs/buy/browse/overview.html

Requires EBAY_APP_ID and EBAY_APP_SECRET. Without them the adapter reports
a successful, empty "not configured" result instead of failing.
"""

import asyncio
import re
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from dealradar.core.exceptions import SourceNotConfiguredError
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


EBAY_CONFIG = SourceConfig(
    name=MarketplaceSource.EBAY,
    rate_limit=RateLimitConfig(requests_per_minute=50, requests_per_day=5000),
    categories=[
        DealCategory.LAPTOPS,
        DealCategory.PHONES,
        DealCategory.TVS,
        DealCategory.GAMING,
        DealCategory.AUDIO,
        DealCategory.CAMERAS,
    ],
    fetch_interval=30,
    priority=9,
)

# eBay condition enum -> our condition
CONDITION_MAP: Dict[str, DealCondition] = {
    "NEW": DealCondition.NEW,
    "LIKE_NEW": DealCondition.LIKE_NEW,
    "NEW_OTHER": DealCondition.LIKE_NEW,
    "NEW_WITH_DEFECTS": DealCondition.LIKE_NEW,
    "CERTIFIED_REFURBISHED": DealCondition.REFURBISHED,
    "EXCELLENT_REFURBISHED": DealCondition.REFURBISHED,
    "VERY_GOOD_REFURBISHED": DealCondition.REFURBISHED,
    "GOOD_REFURBISHED": DealCondition.REFURBISHED,
    "SELLER_REFURBISHED": DealCondition.REFURBISHED,
    "USED_EXCELLENT": DealCondition.USED,
    "USED_VERY_GOOD": DealCondition.USED,
    "USED_GOOD": DealCondition.USED,
    "USED_ACCEPTABLE": DealCondition.USED,
    "FOR_PARTS_OR_NOT_WORKING": DealCondition.FOR_PARTS,
}

CATEGORY_QUERIES: Dict[str, str] = {
    "laptops": "laptop OR macbook OR thinkpad",
    "phones": "iphone OR samsung galaxy OR pixel phone",
    "tvs": "smart tv OR oled tv OR 4k tv",
    "gaming": "playstation OR xbox OR nintendo switch",
    "audio": "headphones OR airpods OR speaker",
    "cameras": "camera OR gopro OR lens",
}
DEFAULT_QUERY = "electronics"

DEAL_FILTER = "buyingOptions:{FIXED_PRICE},conditions:{NEW|LIKE_NEW|CERTIFIED_REFURBISHED}"

# Refresh the token this long before eBay says it expires
TOKEN_REFRESH_MARGIN = timedelta(seconds=60)

# Feedback score above which a seller counts as verified
VERIFIED_FEEDBACK_SCORE = 100


class EbayAdapter(SourceAdapter):
    """eBay Browse API adapter."""

    API_BASE_URL = "https://api.ebay.com/buy/browse/v1"
    OAUTH_URL = "https://api.ebay.com/identity/v1/oauth2/token"
    OAUTH_SCOPE = "https://api.ebay.com/oauth/api_scope"
    MARKETPLACE_ID = "EBAY_US"
    PAGE_SIZE = 50

    def __init__(
        self,
        app_id: str = "",
        app_secret: str = "",
        config: SourceConfig = EBAY_CONFIG,
        now: Callable[[], datetime] = datetime.now,
        **kwargs,
    ):
        super().__init__(config, **kwargs)
        self._now = now
        self.app_id = app_id
        self.app_secret = app_secret

        # OAuth token caching
        self._access_token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._token_lock = asyncio.Lock()

        if not self.is_configured():
            self.logger.warning(
                "ebay_credentials_missing",
                message="EBAY_APP_ID or EBAY_APP_SECRET not set",
            )

    def is_configured(self) -> bool:
        return bool(self.app_id and self.app_secret)

    async def fetch_deals(self, category: Optional[str] = None) -> FetchResult:
        if not self.is_configured():
            return self._not_configured(hint="set EBAY_APP_ID")

        key = category.value if isinstance(category, DealCategory) else category
        params = {
            "q": CATEGORY_QUERIES.get(key or "", DEFAULT_QUERY),
            "limit": str(self.PAGE_SIZE),
            "filter": DEAL_FILTER,
            "sort": "-price",
        }
        return await self._collect(lambda: self._search(params))

    async def search_deals(self, query: str) -> FetchResult:
        if not self.is_configured():
            return self._not_configured()

        params = {"q": query, "limit": str(self.PAGE_SIZE), "sort": "price"}
        return await self._collect(lambda: self._search(params))

    def _not_configured(self, hint: str = "") -> FetchResult:
        # Success with zero deals: "can't even try" is not a source failure
        error = SourceNotConfiguredError("eBay", hint)
        return self.executor.make_result([], time.monotonic(), error=error.message, success=True)

    async def _get_access_token(self) -> str:
        """Get an OAuth 2.0 application token, reusing the cached one if fresh."""
        async with self._token_lock:
            if self._access_token and self._token_expires_at and self._now() < self._token_expires_at:
                return self._access_token

            self.logger.info("ebay_requesting_new_token")

            async with self._client() as client:
                response = await client.post(
                    self.OAUTH_URL,
                    auth=(self.app_id, self.app_secret),
                    data={"grant_type": "client_credentials", "scope": self.OAUTH_SCOPE},
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                response.raise_for_status()
                token_data = response.json()

            self._access_token = token_data["access_token"]
            expires_in = int(token_data.get("expires_in", 7200))
            self._token_expires_at = self._now() + timedelta(seconds=expires_in) - TOKEN_REFRESH_MARGIN

            self.logger.info("ebay_token_acquired", expires_in=expires_in)
            return self._access_token

    async def _search(self, params: Dict[str, str]) -> List[RawDeal]:
        token = await self._get_access_token()

        async with self._client() as client:
            response = await client.get(
                f"{self.API_BASE_URL}/item_summary/search",
                params=params,
                headers={
                    "Authorization": f"Bearer {token}",
                    "X-EBAY-C-MARKETPLACE-ID": self.MARKETPLACE_ID,
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
            data = response.json()

        return self.parse_items(data.get("itemSummaries") or [])

    def parse_items(self, items: List[Dict[str, Any]]) -> List[RawDeal]:
        """Map Browse API item summaries to raw deals.

        Items whose price cannot be read are skipped.
        """
        deals: List[RawDeal] = []

        for item in items:
            try:
                current_price = float(item["price"]["value"])
            except (KeyError, TypeError, ValueError):
                self.logger.debug("ebay_item_skipped", item_id=item.get("itemId"))
                continue

            original_price = None
            marketing = (item.get("marketingPrice") or {}).get("originalPrice") or {}
            if marketing.get("value"):
                try:
                    original_price = float(marketing["value"])
                except (TypeError, ValueError):
                    original_price = None

            seller = item.get("seller") or {}
            feedback_score = int(seller.get("feedbackScore") or 0)
            try:
                # 0-100% positive feedback -> 0-5 stars
                seller_rating = float(seller.get("feedbackPercentage")) / 20
            except (TypeError, ValueError):
                seller_rating = None

            location = None
            if item.get("itemLocation"):
                location = RawLocation(
                    city=item["itemLocation"].get("city"),
                    state=item["itemLocation"].get("stateOrProvince"),
                )

            deals.append(
                RawDeal(
                    source_id=f"ebay-{item.get('itemId')}",
                    source=MarketplaceSource.EBAY,
                    source_url=item.get("itemWebUrl", ""),
                    title=item.get("title", ""),
                    image_url=(item.get("image") or {}).get("imageUrl"),
                    current_price=current_price,
                    original_price=original_price,
                    currency=item["price"].get("currency", "USD"),
                    condition=self.map_condition(item.get("condition")),
                    seller_name=seller.get("username"),
                    seller_rating=seller_rating,
                    seller_reviews=feedback_score,
                    is_verified_seller=feedback_score > VERIFIED_FEEDBACK_SCORE,
                    location=location,
                    posted_at=datetime.now(),
                )
            )

        return deals

    @staticmethod
    def map_condition(condition: Optional[str]) -> DealCondition:
        """Map eBay's condition vocabulary; anything unknown is treated as used."""
        if not condition:
            return DealCondition.USED
        key = re.sub(r"[\s\-]+", "_", condition.strip().upper())
        return CONDITION_MAP.get(key, DealCondition.USED)
