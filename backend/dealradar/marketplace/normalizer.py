"""Deal normalization and cross-source deduplication.

Transforms RawDeal records from every source into the canonical
NormalizedDeal shape: derives the discount, infers a category from the
title, fills seller/popularity defaults and cleans the title. Duplicate
listings (same title fingerprint) are merged keeping the cheapest one.
"""

import math
import re
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from dealradar.marketplace.types import (
    DealCategory,
    DealCondition,
    Location,
    NormalizedDeal,
    Popularity,
    RawDeal,
    Seller,
)


CONDITION_LABELS: Dict[DealCondition, str] = {
    DealCondition.NEW: "Brand New",
    DealCondition.LIKE_NEW: "Like New",
    DealCondition.REFURBISHED: "Refurbished",
    DealCondition.USED: "Used",
    DealCondition.FOR_PARTS: "For Parts",
}

# Keyword-based category rules, tested in order against the lower-cased
# title. The first category with a matching keyword wins.
CATEGORY_KEYWORDS: Dict[DealCategory, List[str]] = {
    DealCategory.LAPTOPS: [
        "laptop", "notebook", "macbook", "chromebook", "thinkpad", "dell xps", "surface laptop",
    ],
    DealCategory.PHONES: ["phone", "iphone", "galaxy s", "pixel", "smartphone", "oneplus"],
    DealCategory.TVS: ["tv", "television", "oled", "qled", "4k tv", "8k tv", "smart tv"],
    DealCategory.GAMING: [
        "xbox", "playstation", "ps5", "ps4", "nintendo", "switch", "gaming", "rtx", "gpu",
        "graphics card",
    ],
    DealCategory.AUDIO: [
        "headphones", "earbuds", "speaker", "soundbar", "airpods", "beats", "bose", "sony wh",
        "audio",
    ],
    DealCategory.WEARABLES: [
        "apple watch", "galaxy watch", "fitbit", "garmin", "smartwatch", "fitness tracker",
    ],
    DealCategory.CAMERAS: ["camera", "dslr", "mirrorless", "gopro", "lens", "canon eos", "sony a7"],
    DealCategory.COMPUTERS: [
        "desktop", "pc", "imac", "mac mini", "mac studio", "computer", "workstation",
    ],
    DealCategory.TABLETS: ["ipad", "tablet", "surface pro", "galaxy tab"],
    DealCategory.ACCESSORIES: [
        "case", "charger", "cable", "adapter", "keyboard", "mouse", "stand", "dock",
    ],
}

PLACEHOLDER_IMAGES: Dict[DealCategory, str] = {
    DealCategory.LAPTOPS: "https://images.unsplash.com/photo-1496181133206-80ce9b88a853?w=400",
    DealCategory.PHONES: "https://images.unsplash.com/photo-1511707171634-5f897ff02aa9?w=400",
    DealCategory.TVS: "https://images.unsplash.com/photo-1593359677879-a4bb92f829d1?w=400",
    DealCategory.GAMING: "https://images.unsplash.com/photo-1606144042614-b2417e99c4e3?w=400",
    DealCategory.AUDIO: "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=400",
    DealCategory.WEARABLES: "https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=400",
    DealCategory.CAMERAS: "https://images.unsplash.com/photo-1516035069371-29a1b244cc32?w=400",
    DealCategory.COMPUTERS: "https://images.unsplash.com/photo-1587831990711-23ca6441447b?w=400",
    DealCategory.TABLETS: "https://images.unsplash.com/photo-1544244015-0df4b3ffc6b0?w=400",
    DealCategory.ACCESSORIES: "https://images.unsplash.com/photo-1572569511254-d8f925fe2cbb?w=400",
    DealCategory.OTHER: "https://images.unsplash.com/photo-1491933382434-500287f9b54b?w=400",
}

MAX_TITLE_LENGTH = 200
FINGERPRINT_TOKENS = 5

_TITLE_DISALLOWED = re.compile(r"[^\w\s\-.,()&]")
_FINGERPRINT_PUNCTUATION = re.compile(r"[^\w\s]")
# "13in", "13inch", "13inches" all describe the same screen size
_SIZE_UNIT = re.compile(r"\b(\d+)(?:inches|inch|in)\b")


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (Python rounds half to even)."""
    return int(math.floor(value + 0.5))


def calculate_discount(current_price: float, original_price: float) -> int:
    """Percentage saved versus the original price, clamped to 0-100."""
    if original_price <= 0:
        return 0
    discount = round_half_up((original_price - current_price) / original_price * 100)
    return min(100, max(0, discount))


def infer_category(title: str) -> DealCategory:
    """Classify a deal by title keywords. Defaults to ``other``."""
    title_lower = (title or "").lower()

    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in title_lower for keyword in keywords):
            return category

    return DealCategory.OTHER


def clean_title(title: str) -> str:
    """Trim, collapse whitespace, drop odd characters and cap the length."""
    cleaned = re.sub(r"\s+", " ", (title or "").strip())
    cleaned = _TITLE_DISALLOWED.sub("", cleaned)
    return cleaned[:MAX_TITLE_LENGTH]


def get_placeholder_image(category: DealCategory) -> str:
    return PLACEHOLDER_IMAGES.get(category, PLACEHOLDER_IMAGES[DealCategory.OTHER])


def normalize_deal(raw: RawDeal, now: Optional[datetime] = None) -> NormalizedDeal:
    """Map one raw deal onto the canonical schema.

    Args:
        raw: Deal as reported by a source
        now: Timestamp used for ``fetched_at`` and missing ``posted_at``

    Returns:
        A new NormalizedDeal with a fresh id
    """
    now = now or datetime.now()

    original_price = raw.original_price or raw.current_price
    discount = calculate_discount(raw.current_price, original_price)

    upvotes = raw.upvotes or 0
    downvotes = raw.downvotes or 0
    comments = raw.comment_count or 0

    category = infer_category(raw.title)
    condition = raw.condition or DealCondition.NEW

    location = None
    if raw.location is not None:
        location = Location(city=raw.location.city or "", state=raw.location.state or "")

    return NormalizedDeal(
        id=str(uuid.uuid4()),
        source_id=raw.source_id,
        source=raw.source,
        source_url=raw.source_url,
        title=clean_title(raw.title),
        description=raw.description or "",
        category=category,
        image_url=raw.image_url or get_placeholder_image(category),
        images=list(raw.images) if raw.images else ([raw.image_url] if raw.image_url else []),
        current_price=raw.current_price,
        original_price=original_price,
        discount=discount,
        currency=raw.currency or "USD",
        condition=condition,
        condition_label=CONDITION_LABELS[condition],
        in_stock=raw.in_stock is not False,
        quantity=raw.quantity,
        seller=Seller(
            name=raw.seller_name or "Unknown Seller",
            rating=raw.seller_rating if raw.seller_rating is not None else 0.0,
            reviews=raw.seller_reviews if raw.seller_reviews is not None else 0,
            verified=bool(raw.is_verified_seller),
        ),
        location=location,
        posted_at=raw.posted_at or now,
        expires_at=raw.expires_at,
        fetched_at=now,
        popularity=Popularity(
            upvotes=upvotes,
            downvotes=downvotes,
            comments=comments,
            score=upvotes - downvotes + comments * 0.5,
        ),
        coupon_code=raw.coupon_code or None,
        promo_details=raw.promo_details or None,
    )


def normalize_deals(raw_deals: Iterable[RawDeal]) -> List[NormalizedDeal]:
    """Normalize a batch, drop non-positive prices, biggest discount first."""
    now = datetime.now()
    normalized = [normalize_deal(raw, now=now) for raw in raw_deals]
    valid = [deal for deal in normalized if deal.current_price > 0]
    return sorted(valid, key=lambda deal: deal.discount, reverse=True)


def create_fingerprint(title: str) -> str:
    """Title-derived key used to spot the same listing across sources.

    Lower-cases, strips punctuation, drops words of two characters or less,
    then sorts the first five remaining words.
    """
    text = _FINGERPRINT_PUNCTUATION.sub("", (title or "").lower())
    text = _SIZE_UNIT.sub(r"\1in", text)
    words = [word for word in text.split() if len(word) > 2]
    return "-".join(sorted(words[:FINGERPRINT_TOKENS]))


def deduplicate_deals(deals: Iterable[NormalizedDeal]) -> List[NormalizedDeal]:
    """Merge deals sharing a fingerprint, keeping the cheaper one.

    Single greedy pass. On a price tie the deal seen first survives, and the
    output keeps the order in which each fingerprint was first seen.
    """
    seen: Dict[str, NormalizedDeal] = {}

    for deal in deals:
        fingerprint = create_fingerprint(deal.title)
        existing = seen.get(fingerprint)
        if existing is None or deal.current_price < existing.current_price:
            seen[fingerprint] = deal

    return list(seen.values())
