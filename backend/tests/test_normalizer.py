"""Tests for deal normalization and deduplication."""

from datetime import datetime

import pytest

from conftest import FIXED_NOW, make_deal, make_raw_deal
from dealradar.marketplace.normalizer import (
    CONDITION_LABELS,
    PLACEHOLDER_IMAGES,
    calculate_discount,
    clean_title,
    create_fingerprint,
    deduplicate_deals,
    infer_category,
    normalize_deal,
    normalize_deals,
    round_half_up,
)
from dealradar.marketplace.types import (
    DealCategory,
    DealCondition,
    MarketplaceSource,
    RawLocation,
)


# ============================================================================
# TESTS: DISCOUNT
# ============================================================================

class TestDiscount:

    @pytest.mark.parametrize(
        "current,original,expected",
        [
            (799, 999, 20),
            (50, 100, 50),
            (87.5, 100, 13),  # .5 rounds up
            (100, 100, 0),
            (120, 100, 0),  # price went up
            (0, 100, 100),
            (50, 0, 0),
        ],
    )
    def test_calculate_discount(self, current, original, expected):
        assert calculate_discount(current, original) == expected

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2

    def test_discount_invariant_holds_for_normalized_deals(self):
        prices = [(1, 1000), (999, 1000), (10, 3), (42.42, 84.84), (5, None)]
        for current, original in prices:
            deal = make_deal(current_price=current, original_price=original)
            assert 0 <= deal.discount <= 100
            if deal.original_price > 0:
                expected = round_half_up((deal.original_price - deal.current_price) / deal.original_price * 100)
                assert deal.discount == min(100, max(0, expected))


# ============================================================================
# TESTS: NORMALIZE
# ============================================================================

class TestNormalizeDeal:

    def test_iphone_scenario(self):
        raw = make_raw_deal(title="iPhone 14 - $799", current_price=799.0, original_price=999.0)

        deal = normalize_deal(raw, now=FIXED_NOW)

        assert deal.current_price == 799.0
        assert deal.original_price == 999.0
        assert deal.discount == 20
        assert deal.category == DealCategory.PHONES
        assert deal.title == "iPhone 14 - 799"

    def test_missing_original_price_means_no_discount(self):
        deal = make_deal(current_price=250.0, original_price=None)
        assert deal.original_price == 250.0
        assert deal.discount == 0

    def test_defaults_are_filled(self):
        deal = make_deal(condition=DealCondition.REFURBISHED, posted_at=None)

        assert deal.seller.name == "Unknown Seller"
        assert deal.seller.rating == 0.0
        assert deal.seller.reviews == 0
        assert deal.seller.verified is False
        assert deal.condition_label == CONDITION_LABELS[DealCondition.REFURBISHED]
        assert deal.posted_at == FIXED_NOW
        assert deal.fetched_at == FIXED_NOW
        assert deal.in_stock is True
        assert deal.currency == "USD"
        assert deal.id

    def test_popularity_score(self):
        deal = make_deal(upvotes=10, downvotes=2, comment_count=5)
        assert deal.popularity.score == 10.5

    def test_placeholder_image_by_category(self):
        deal = make_deal(title="Dell XPS 13 Laptop", image_url=None)
        assert deal.image_url == PLACEHOLDER_IMAGES[DealCategory.LAPTOPS]
        assert deal.images == []

    def test_image_list_from_single_image(self):
        deal = make_deal(image_url="https://img.example.com/a.jpg")
        assert deal.images == ["https://img.example.com/a.jpg"]

    def test_location_is_mapped(self):
        deal = make_deal(
            source=MarketplaceSource.CRAIGSLIST,
            location=RawLocation(city="Austin", state="TX"),
        )
        assert deal.location.city == "Austin"
        assert deal.location.state == "TX"

    def test_out_of_stock_is_kept(self):
        assert make_deal(in_stock=False).in_stock is False

    def test_ids_are_unique(self):
        raw = make_raw_deal()
        assert normalize_deal(raw).id != normalize_deal(raw).id


class TestNormalizeDeals:

    def test_drops_non_positive_prices(self):
        raws = [
            make_raw_deal(source_id="a", current_price=0),
            make_raw_deal(source_id="b", current_price=-5),
            make_raw_deal(source_id="c", current_price=10),
        ]

        deals = normalize_deals(raws)

        assert [deal.source_id for deal in deals] == ["c"]
        assert all(deal.current_price > 0 for deal in deals)

    def test_sorted_by_discount(self):
        raws = [
            make_raw_deal(source_id="small", current_price=90, original_price=100),
            make_raw_deal(source_id="big", current_price=40, original_price=100),
            make_raw_deal(source_id="none", current_price=100),
        ]

        assert [deal.source_id for deal in normalize_deals(raws)] == ["big", "small", "none"]


# ============================================================================
# TESTS: TITLES AND CATEGORIES
# ============================================================================

class TestTitlesAndCategories:

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Dell XPS 13 Laptop", DealCategory.LAPTOPS),
            ("Google Pixel 8 Pro", DealCategory.PHONES),
            ("LG 55 inch 4K Smart TV", DealCategory.TVS),
            ("PS5 Slim Console", DealCategory.GAMING),
            ("Bose QuietComfort Earbuds", DealCategory.AUDIO),
            ("Garmin Forerunner 265", DealCategory.WEARABLES),
            ("Canon EOS R6 camera body", DealCategory.CAMERAS),
            ("Mac Mini M2", DealCategory.COMPUTERS),
            ("iPad Air 5th Gen", DealCategory.TABLETS),
            ("USB-C Charger 65W", DealCategory.ACCESSORIES),
            ("Random gadget", DealCategory.OTHER),
        ],
    )
    def test_infer_category(self, title, expected):
        assert infer_category(title) == expected

    def test_first_matching_category_wins(self):
        # "macbook" (laptops) is checked before "case" (accessories)
        assert infer_category("MacBook Pro hard case") == DealCategory.LAPTOPS

    def test_clean_title(self):
        assert clean_title("  Hello   World!  ") == "Hello World"
        assert clean_title("Save 20% (today) & more, really.") == "Save 20 (today) & more, really."
        assert len(clean_title("x" * 500)) == 200


# ============================================================================
# TESTS: DEDUPLICATION
# ============================================================================

class TestDeduplication:

    def test_macbook_scenario(self):
        expensive = make_deal(source_id="a", title="Apple MacBook Air M2 13in", current_price=900)
        cheap = make_deal(source_id="b", title="MacBook Air M2 13-inch Apple", current_price=850)

        assert create_fingerprint(expensive.title) == create_fingerprint(cheap.title)

        result = deduplicate_deals([expensive, cheap])

        assert len(result) == 1
        assert result[0].source_id == "b"
        assert result[0].current_price == 850

    def test_fingerprint_shape(self):
        assert create_fingerprint("The quick brown fox jumps over the lazy dog") == "brown-fox-jumps-quick-the"

    def test_tie_keeps_first_seen(self):
        first = make_deal(source_id="first", title="Sony Bravia OLED", current_price=999)
        second = make_deal(source_id="second", title="Sony Bravia OLED", current_price=999)

        assert deduplicate_deals([first, second])[0].source_id == "first"
        assert deduplicate_deals([second, first])[0].source_id == "second"

    def test_idempotent(self):
        deals = [
            make_deal(source_id="1", title="Apple MacBook Air M2 13in", current_price=900),
            make_deal(source_id="2", title="MacBook Air M2 13-inch Apple", current_price=850),
            make_deal(source_id="3", title="Nintendo Switch Lite", current_price=179),
            make_deal(source_id="4", title="Nintendo Switch Lite", current_price=199),
        ]

        once = deduplicate_deals(deals)
        twice = deduplicate_deals(once)

        assert [deal.source_id for deal in once] == ["2", "3"]
        assert [deal.source_id for deal in twice] == [deal.source_id for deal in once]

    def test_keeps_first_seen_order(self):
        deals = [
            make_deal(source_id="tv", title="Samsung QLED TV", current_price=500),
            make_deal(source_id="phone", title="Pixel Phone Eight", current_price=300),
            make_deal(source_id="tv-cheaper", title="Samsung QLED TV", current_price=450),
        ]

        assert [deal.source_id for deal in deduplicate_deals(deals)] == ["tv-cheaper", "phone"]
