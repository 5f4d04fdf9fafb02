"""Wire-level tests for the marketplace source adapters.

HTTP is served by httpx.MockTransport, and every adapter gets an executor
with a recording sleep so retries and pacing never wait for real.
"""

from datetime import datetime, timedelta

import httpx
import pytest

from dealradar.marketplace.fetcher import RateLimitedExecutor
from dealradar.marketplace.sources import (
    CRAIGSLIST_CONFIG,
    DEALNEWS_CONFIG,
    EBAY_CONFIG,
    SLICKDEALS_CONFIG,
    CraigslistAdapter,
    DealNewsAdapter,
    EbayAdapter,
    SlickdealsAdapter,
)
from dealradar.marketplace.types import DealCondition, MarketplaceSource


SLICKDEALS_RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel>
<item>
  <title>iPhone 14 - $799</title>
  <link>https://slickdeals.net/f/17000001-iphone-14</link>
  <description><![CDATA[Was $999 at Best Buy. 42 thumbs up <img src="https://img.example.com/iphone.jpg">]]></description>
  <pubDate>Sat, 01 Jun 2024 10:00:00 +0000</pubDate>
</item>
<item>
  <title>Mystery item with no price</title>
  <link>https://slickdeals.net/f/17000002-mystery</link>
  <description>Nothing to see</description>
</item>
<item>
  <title>Anker Charger $19.99</title>
  <link>https://slickdeals.net/f/17000003-anker</link>
  <description>reg. $39.99 from Walmart, today only</description>
</item>
</channel></rss>"""

DEALNEWS_RSS = """<rss><channel>
<item>
  <title>Apple AirPods Pro 2 for $189 at Amazon</title>
  <link>https://www.dealnews.com/products/Apple/AirPods-Pro-2/123456.html</link>
  <description>List $249. Use code SAVE20 at checkout.</description>
  <pubDate>Sat, 01 Jun 2024 09:00:00 +0000</pubDate>
</item>
<item>
  <title>Samsung 65" QLED TV for $899 at Best Buy</title>
  <link>https://www.dealnews.com/products/Samsung/QLED/654321.html</link>
  <description>Was $1,299</description>
</item>
</channel></rss>"""

CRAIGSLIST_RSS = """<rdf:RDF><channel></channel>
<item rdf:about="https://sfbay.craigslist.org/sfc/sys/d/macbook/7712345678.html">
  <title><![CDATA[MacBook Pro 13inch M1 - $750]]></title>
  <link>https://sfbay.craigslist.org/sfc/sys/d/macbook/7712345678.html</link>
  <description><![CDATA[Lightly used, battery 95%]]></description>
  <dc:date>2024-06-01T08:00:00-07:00</dc:date>
  <enc:enclosure resource="https://images.craigslist.org/abc_600x450.jpg" type="image/jpeg"/>
</item>
<item>
  <title>Free couch</title>
  <link>https://sfbay.craigslist.org/sfc/fuo/d/couch/7712345679.html</link>
</item>
</rdf:RDF>"""

EBAY_SEARCH_RESPONSE = {
    "itemSummaries": [
        {
            "itemId": "v1|1234|0",
            "title": "Apple MacBook Air 13in M2 8GB 256GB",
            "price": {"value": "799.00", "currency": "USD"},
            "marketingPrice": {"originalPrice": {"value": "1099.00", "currency": "USD"}},
            "condition": "Certified - Refurbished",
            "itemWebUrl": "https://www.ebay.com/itm/1234",
            "image": {"imageUrl": "https://i.ebayimg.com/1234.jpg"},
            "seller": {"username": "apple_outlet", "feedbackPercentage": "99.5", "feedbackScore": 15000},
            "itemLocation": {"city": "Austin", "stateOrProvince": "TX"},
        },
        {
            "itemId": "v1|5678|0",
            "title": "Broken listing",
            "price": {"value": "call for price"},
        },
    ]
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _text(body: str, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=body)

    return handler


# ============================================================================
# TESTS: SLICKDEALS
# ============================================================================

class TestSlickdeals:

    async def test_fetch_parses_feed(self, recording_sleep):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=SLICKDEALS_RSS)

        adapter = SlickdealsAdapter(
            executor=RateLimitedExecutor(SLICKDEALS_CONFIG, sleep=recording_sleep),
            http_client=_client(handler),
        )

        result = await adapter.fetch_deals()

        assert result.success is True
        assert result.source == MarketplaceSource.SLICKDEALS
        assert len(result.deals) == 2
        assert seen[0].headers["User-Agent"] == "DealRadar Deal Aggregator/1.0"

        iphone = result.deals[0]
        assert iphone.title == "iPhone 14 - $799"
        assert iphone.current_price == 799.0
        assert iphone.original_price == 999.0
        assert iphone.seller_name == "Best Buy"
        assert iphone.upvotes == 42
        assert iphone.image_url == "https://img.example.com/iphone.jpg"
        assert iphone.source_id == "sd-17000001"
        assert iphone.is_verified_seller is True
        assert iphone.condition == DealCondition.NEW

    async def test_abbreviated_regular_price(self, recording_sleep):
        adapter = SlickdealsAdapter(
            executor=RateLimitedExecutor(SLICKDEALS_CONFIG, sleep=recording_sleep),
            http_client=_client(_text(SLICKDEALS_RSS)),
        )

        result = await adapter.fetch_deals()
        charger = result.deals[1]

        assert charger.current_price == 19.99
        assert charger.original_price == 39.99
        assert charger.seller_name == "Walmart"

    async def test_search_sends_query(self, recording_sleep):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=SLICKDEALS_RSS)

        adapter = SlickdealsAdapter(
            executor=RateLimitedExecutor(SLICKDEALS_CONFIG, sleep=recording_sleep),
            http_client=_client(handler),
        )

        await adapter.search_deals("iphone")

        assert seen[0].url.params["q"] == "iphone"
        assert seen[0].url.params["rss"] == "1"

    async def test_http_failure_becomes_failed_result(self, recording_sleep):
        adapter = SlickdealsAdapter(
            executor=RateLimitedExecutor(SLICKDEALS_CONFIG, sleep=recording_sleep),
            http_client=_client(_text("oops", status_code=503)),
        )

        result = await adapter.fetch_deals()

        assert result.success is False
        assert result.deals == []
        assert "503" in result.error
        assert adapter.get_stats()["requests_today"] == 3


# ============================================================================
# TESTS: DEALNEWS
# ============================================================================

class TestDealNews:

    def test_parse_rss(self):
        deals = DealNewsAdapter().parse_rss(DEALNEWS_RSS)

        assert len(deals) == 2
        airpods = deals[0]
        assert airpods.current_price == 189.0
        assert airpods.original_price == 249.0
        assert airpods.seller_name == "Amazon"
        assert airpods.coupon_code == "SAVE20"
        assert airpods.promo_details == "Use code: SAVE20"
        assert airpods.source_id == "dn-123456"

        tv = deals[1]
        assert tv.original_price == 1299.0
        assert tv.coupon_code is None

    def test_feed_url_per_category(self):
        adapter = DealNewsAdapter()
        assert adapter.feed_url("laptops") != adapter.feed_url(None)
        assert adapter.feed_url("unknown-category") == adapter.feed_url(None)

    async def test_search_filters_locally(self, recording_sleep):
        adapter = DealNewsAdapter(
            executor=RateLimitedExecutor(DEALNEWS_CONFIG, sleep=recording_sleep),
            http_client=_client(_text(DEALNEWS_RSS)),
        )

        result = await adapter.search_deals("airpods")

        assert result.success is True
        assert [deal.title for deal in result.deals] == ["Apple AirPods Pro 2 for $189 at Amazon"]

    async def test_fetch_all_categories_merges_by_url(self, recording_sleep):
        adapter = DealNewsAdapter(
            executor=RateLimitedExecutor(DEALNEWS_CONFIG, sleep=recording_sleep),
            http_client=_client(_text(DEALNEWS_RSS)),
        )

        result = await adapter.fetch_all_categories()

        # Every category feed returns the same two listings
        assert result.success is True
        assert len(result.deals) == 2


# ============================================================================
# TESTS: CRAIGSLIST
# ============================================================================

class TestCraigslist:

    def test_parse_rss(self):
        deals = CraigslistAdapter().parse_rss(CRAIGSLIST_RSS, "sfbay")

        assert len(deals) == 1
        macbook = deals[0]
        assert macbook.title == "MacBook Pro 13inch M1"
        assert macbook.current_price == 750.0
        assert macbook.condition == DealCondition.USED
        assert macbook.location.city == "San Francisco"
        assert macbook.location.state == "CA"
        assert macbook.image_url == "https://images.craigslist.org/abc_600x450.jpg"
        assert macbook.source_id == "cl-7712345678"
        assert macbook.is_verified_seller is False

    def test_section_for_category(self):
        assert CraigslistAdapter.section_for("laptops") == "sya"
        assert CraigslistAdapter.section_for(None) == "sss"
        assert CraigslistAdapter.section_for("nonsense") == "sss"

    def test_get_cities(self):
        cities = CraigslistAdapter.get_cities()
        assert cities[0] == {"code": "newyork", "name": "New York", "state": "NY"}
        assert len(cities) == 11

    async def test_fetch_builds_city_url(self, recording_sleep):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=CRAIGSLIST_RSS)

        adapter = CraigslistAdapter(
            executor=RateLimitedExecutor(CRAIGSLIST_CONFIG, sleep=recording_sleep),
            http_client=_client(handler),
        )

        result = await adapter.fetch_deals("phones", city="seattle")

        assert result.success is True
        assert seen[0].url.host == "seattle.craigslist.org"
        assert seen[0].url.path == "/search/moa"
        assert seen[0].url.params["format"] == "rss"
        assert seen[0].headers["User-Agent"].startswith("Mozilla/5.0")
        assert result.deals[0].location.city == "Seattle"

    async def test_multi_city_tolerates_failed_city(self, recording_sleep):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host.startswith("newyork"):
                return httpx.Response(500, text="down")
            return httpx.Response(200, text=CRAIGSLIST_RSS)

        adapter = CraigslistAdapter(
            executor=RateLimitedExecutor(CRAIGSLIST_CONFIG, sleep=recording_sleep),
            http_client=_client(handler),
        )

        result = await adapter.fetch_multiple_cities("laptops")

        assert result.success is True
        assert len(result.deals) == 4
        cities = {deal.location.city for deal in result.deals}
        assert "New York" not in cities

    async def test_multi_city_fails_when_every_city_fails(self, recording_sleep):
        adapter = CraigslistAdapter(
            executor=RateLimitedExecutor(CRAIGSLIST_CONFIG, sleep=recording_sleep),
            http_client=_client(_text("down", status_code=500)),
        )

        result = await adapter.fetch_multiple_cities()

        assert result.success is False
        assert result.deals == []
        assert "newyork" in result.error


# ============================================================================
# TESTS: EBAY
# ============================================================================

class TestEbay:

    async def test_not_configured_makes_no_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        adapter = EbayAdapter(http_client=_client(handler))

        fetched = await adapter.fetch_deals()
        searched = await adapter.search_deals("macbook")

        assert adapter.is_configured() is False
        assert fetched.success is True
        assert fetched.deals == []
        assert fetched.error == "eBay API not configured - set EBAY_APP_ID"
        assert searched.success is True
        assert searched.error == "eBay API not configured"
        assert adapter.get_stats()["requests_today"] == 0

    async def test_search_with_token(self, recording_sleep):
        token_requests = []
        search_requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/oauth2/token"):
                token_requests.append(request)
                return httpx.Response(200, json={"access_token": "tok-123", "expires_in": 7200})
            search_requests.append(request)
            return httpx.Response(200, json=EBAY_SEARCH_RESPONSE)

        adapter = EbayAdapter(
            app_id="app",
            app_secret="secret",
            executor=RateLimitedExecutor(EBAY_CONFIG, sleep=recording_sleep),
            http_client=_client(handler),
        )

        first = await adapter.fetch_deals("laptops")
        await adapter.search_deals("macbook")

        # Token is cached between calls
        assert len(token_requests) == 1
        assert token_requests[0].headers["Authorization"].startswith("Basic ")
        assert search_requests[0].headers["Authorization"] == "Bearer tok-123"
        assert search_requests[0].headers["X-EBAY-C-MARKETPLACE-ID"] == "EBAY_US"
        assert search_requests[0].url.params["sort"] == "-price"
        assert search_requests[1].url.params["q"] == "macbook"

        assert first.success is True
        assert len(first.deals) == 1
        item = first.deals[0]
        assert item.current_price == 799.0
        assert item.original_price == 1099.0
        assert item.condition == DealCondition.REFURBISHED
        assert item.seller_rating == pytest.approx(4.975)
        assert item.seller_reviews == 15000
        assert item.is_verified_seller is True
        assert item.location.city == "Austin"

    async def test_token_refreshed_a_minute_before_expiry(self, recording_sleep):
        current = {"now": datetime(2024, 6, 1, 12, 0, 0)}
        issued = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/oauth2/token"):
                issued.append(f"tok-{len(issued) + 1}")
                return httpx.Response(200, json={"access_token": issued[-1], "expires_in": 7200})
            return httpx.Response(200, json=EBAY_SEARCH_RESPONSE)

        adapter = EbayAdapter(
            app_id="app",
            app_secret="secret",
            now=lambda: current["now"],
            executor=RateLimitedExecutor(EBAY_CONFIG, sleep=recording_sleep),
            http_client=_client(handler),
        )

        await adapter.search_deals("macbook")
        current["now"] += timedelta(seconds=7200 - 61)
        await adapter.search_deals("macbook")
        assert issued == ["tok-1"]

        current["now"] += timedelta(seconds=1)
        await adapter.search_deals("macbook")

        assert issued == ["tok-1", "tok-2"]
        assert await adapter._get_access_token() == "tok-2"

    def test_map_condition(self):
        assert EbayAdapter.map_condition("NEW") == DealCondition.NEW
        assert EbayAdapter.map_condition("Used - Very Good") == DealCondition.USED
        assert EbayAdapter.map_condition("For parts or not working") == DealCondition.FOR_PARTS
        assert EbayAdapter.map_condition(None) == DealCondition.USED
        assert EbayAdapter.map_condition("Mystery") == DealCondition.USED

    def test_parse_items_skips_unreadable_price(self):
        deals = EbayAdapter().parse_items(EBAY_SEARCH_RESPONSE["itemSummaries"])
        assert [deal.source_id for deal in deals] == ["ebay-v1|1234|0"]
