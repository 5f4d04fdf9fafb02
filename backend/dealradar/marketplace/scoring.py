"""Deal quality scoring.

Computes an explainable 0-100 score for each normalized deal from four
weighted components:

    - Price (40%): depth of the discount, all-time-low bonus
    - Seller (30%): verification, star rating, review volume
    - Timing (20%): how recently the deal was posted
    - Community (10%): votes and comments on deal aggregators

Every banded decision can add a human-readable reason; at most four are
kept. A separate pass flags deals that look too good to be true.
"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional

import structlog

from dealradar.marketplace.normalizer import round_half_up
from dealradar.marketplace.types import AIScore, DealCondition, LOCAL_SOURCES, NormalizedDeal


logger = structlog.get_logger(__name__)

PRICE_WEIGHT = 0.40
SELLER_WEIGHT = 0.30
TIMING_WEIGHT = 0.20
COMMUNITY_WEIGHT = 0.10

MAX_REASONS = 4

# (minimum overall score, verdict), checked top-down
VERDICT_BANDS = [
    (90, "Exceptional Deal"),
    (80, "Great Deal"),
    (70, "Good Value"),
    (60, "Fair Price"),
    (50, "Average"),
]
BELOW_AVERAGE = "Below Average"

SUSPICIOUS_PREFIX = "⚠️ "


def _clamp(value: float, low: int = 0, high: int = 100) -> int:
    return int(min(high, max(low, value)))


def _price_score(deal: NormalizedDeal, reasons: List[str]) -> int:
    discount = deal.discount

    if discount >= 50:
        score = 95
        reasons.append(f"Exceptional {discount}% discount")
    elif discount >= 30:
        score = 85
        reasons.append(f"Strong {discount}% discount")
    elif discount >= 20:
        score = 75
        reasons.append(f"Good {discount}% savings")
    elif discount >= 10:
        score = 65
        reasons.append(f"Modest {discount}% discount")
    elif discount > 0:
        score = 55
    else:
        score = 50

    if deal.is_all_time_low:
        score = min(100, score + 10)
        reasons.append("All-time lowest price!")

    return _clamp(score)


def _seller_score(deal: NormalizedDeal, reasons: List[str]) -> int:
    seller = deal.seller
    score = 50

    if seller.verified:
        score += 15
        reasons.append("Verified seller")

    if seller.rating >= 4.8:
        score += 25
        reasons.append(f"Excellent {seller.rating:.1f}★ rating")
    elif seller.rating >= 4.5:
        score += 20
    elif seller.rating >= 4.0:
        score += 10
    elif 0 < seller.rating < 3.5:
        score -= 15
        reasons.append("Lower seller rating - buy with caution")

    if seller.reviews > 1000:
        score += 10
        reasons.append(f"{seller.reviews:,} reviews")
    elif seller.reviews > 100:
        score += 5

    return _clamp(score)


def _timing_score(deal: NormalizedDeal, reasons: List[str], now: datetime) -> int:
    hours_old = (now - deal.posted_at).total_seconds() / 3600

    if hours_old < 1:
        score = 95
        reasons.append("Just posted - act fast!")
    elif hours_old < 6:
        score = 85
        reasons.append("Fresh deal")
    elif hours_old < 24:
        score = 70
    elif hours_old > 72:
        score = 40
        reasons.append("Deal may be expired")
    else:
        score = 50

    return _clamp(score)


def _community_score(deal: NormalizedDeal, reasons: List[str]) -> int:
    popularity = deal.popularity.score

    if popularity > 100:
        score = 90
        reasons.append("Highly rated by community")
    elif popularity > 50:
        score = 75
    elif popularity > 10:
        score = 60
    else:
        score = 50

    return _clamp(score)


def verdict_for(overall: int) -> str:
    for threshold, verdict in VERDICT_BANDS:
        if overall >= threshold:
            return verdict
    return BELOW_AVERAGE


def calculate_ai_score(deal: NormalizedDeal, now: Optional[datetime] = None) -> AIScore:
    """Score one deal.

    Args:
        deal: Normalized deal
        now: Reference time for the timing component (defaults to now)

    Returns:
        AIScore with the overall score, sub-scores, verdict and up to four reasons
    """
    now = now or datetime.now()
    reasons: List[str] = []

    price_score = _price_score(deal, reasons)
    seller_score = _seller_score(deal, reasons)
    timing_score = _timing_score(deal, reasons, now)
    community_score = _community_score(deal, reasons)

    overall = _clamp(
        round_half_up(
            price_score * PRICE_WEIGHT
            + seller_score * SELLER_WEIGHT
            + timing_score * TIMING_WEIGHT
            + community_score * COMMUNITY_WEIGHT
        )
    )

    return AIScore(
        overall=overall,
        price_score=price_score,
        seller_score=seller_score,
        timing_score=timing_score,
        community_score=community_score,
        verdict=verdict_for(overall),
        reasons=reasons[:MAX_REASONS],
    )


def enhance_deals_with_scores(
    deals: Iterable[NormalizedDeal], now: Optional[datetime] = None
) -> List[NormalizedDeal]:
    """Return copies of the deals with ``ai_score`` attached."""
    now = now or datetime.now()
    return [replace(deal, ai_score=calculate_ai_score(deal, now=now)) for deal in deals]


def suspicious_flags(deal: NormalizedDeal) -> List[str]:
    """Fake-deal heuristics that apply to this deal, most severe first."""
    flags: List[str] = []

    # Too good to be true pricing
    if deal.discount > 80 and deal.current_price < 50:
        flags.append("Unusually high discount")

    # New seller with amazing deal
    if deal.seller.reviews < 10 and deal.discount > 50:
        flags.append("New seller with steep discount")

    # Brand-new premium item on a local marketplace
    if deal.source in LOCAL_SOURCES and deal.current_price > 500 and deal.condition == DealCondition.NEW:
        flags.append("High-value item on local marketplace")

    return flags


def detect_suspicious_deals(deals: Iterable[NormalizedDeal]) -> List[NormalizedDeal]:
    """Append one warning reason to deals that look fake.

    Advisory only: the overall score is untouched and nothing is dropped.
    """
    result: List[NormalizedDeal] = []
    flagged = 0

    for deal in deals:
        flags = suspicious_flags(deal)
        if flags and deal.ai_score is not None:
            score = replace(deal.ai_score, reasons=[*deal.ai_score.reasons, f"{SUSPICIOUS_PREFIX}{flags[0]}"])
            deal = replace(deal, ai_score=score)
            flagged += 1
        result.append(deal)

    if flagged:
        logger.info("suspicious_deals_flagged", count=flagged)

    return result
