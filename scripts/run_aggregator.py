"""Manual aggregator runner for testing and debugging sources.

Runs a live fetch (or search) through the marketplace aggregator and prints
the ranked deals plus how every source fared.

Usage:
    python scripts/run_aggregator.py
    python scripts/run_aggregator.py --sources slickdeals,dealnews --category laptops
    python scripts/run_aggregator.py --search "macbook air" --limit 5
    python scripts/run_aggregator.py --hot
"""

import argparse
import asyncio
import os
import sys
import traceback
from typing import List, Optional

# Add backend to path so we can import dealradar modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from dealradar.config import settings
from dealradar.marketplace import build_aggregator
from dealradar.marketplace.types import AggregatorResult, NormalizedDeal


async def run_aggregator(
    sources: Optional[List[str]] = None,
    category: Optional[str] = None,
    city: Optional[str] = None,
    query: Optional[str] = None,
    hot: bool = False,
    limit: int = 10,
) -> None:
    """Run one aggregator call and display the results.

    Args:
        sources: Source names (default: slickdeals, dealnews, craigslist)
        category: Optional category filter (e.g., "laptops")
        city: Craigslist city code (e.g., "sfbay")
        query: Search query; switches to search mode
        hot: Fetch hot deals instead of the regular listing
        limit: Maximum number of deals to display (default: 10)
    """
    aggregator = build_aggregator(settings)

    mode = "HOT DEALS" if hot else ("SEARCH" if query else "DEALS")
    print(f"\n{'='*70}")
    print(f"  Running aggregator: {mode}")
    print(f"{'='*70}")
    if query:
        print(f"  🔍 Query: {query}")
    if category:
        print(f"  🏷️  Category: {category}")
    if city:
        print(f"  📍 City: {city}")
    print(f"  📊 Display Limit: {limit}")
    print(f"{'='*70}\n")

    try:
        if hot:
            result = await aggregator.get_hot_deals(limit=limit)
        elif query:
            result = await aggregator.search(query, sources=sources, city=city, limit=limit, use_cache=False)
        else:
            result = await aggregator.fetch_deals(
                sources=sources, category=category, city=city, limit=limit, use_cache=False
            )
    except Exception as e:
        print(f"\n❌ Error occurred while aggregating deals:")
        print(f"   {type(e).__name__}: {e}")
        print(f"\n📋 Full traceback:")
        traceback.print_exc()
        print()
        return

    _print_sources(result)

    if not result.deals:
        print("⚠️  No deals found.\n")
        return

    print(f"{'='*70}")
    print(f"  Top {len(result.deals)} Deals")
    print(f"{'='*70}\n")

    for i, deal in enumerate(result.deals, 1):
        _print_deal(i, deal)

    print(f"{'='*70}")
    print(f"  Summary")
    print(f"{'='*70}")
    print(f"  Fetched: {result.total_fetched}")
    print(f"  After dedup: {result.total_after_dedup}")
    print(f"  Displayed: {len(result.deals)}")
    print(f"  Fetch time: {result.fetch_time} ms")
    print(f"{'='*70}\n")


def _print_sources(result: AggregatorResult) -> None:
    for status in result.sources:
        icon = "✅" if status.success else "❌"
        line = f"{icon} {status.name.value}: {status.count} deals"
        if status.error:
            line += f" ({status.error})"
        print(line)
    print()


def _print_deal(index: int, deal: NormalizedDeal) -> None:
    print(f"[{index}] {deal.title}")
    print(f"    💰 Price: ${deal.current_price:,.2f}")

    if deal.discount:
        print(f"    🔖 Original: ${deal.original_price:,.2f} (-{deal.discount}%)")

    if deal.ai_score:
        print(f"    ⭐ Score: {deal.ai_score.overall} ({deal.ai_score.verdict})")
        for reason in deal.ai_score.reasons:
            print(f"       - {reason}")

    print(f"    🏪 {deal.source.value} | {deal.category.value} | {deal.condition_label}")
    print(f"    🔗 URL: {deal.source_url[:80]}")
    print()


def main():
    """Parse arguments and run the aggregator."""
    parser = argparse.ArgumentParser(
        description="Run the marketplace aggregator for testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_aggregator.py
  python scripts/run_aggregator.py --sources slickdeals,dealnews --category laptops
  python scripts/run_aggregator.py --search "macbook air" --limit 5
  python scripts/run_aggregator.py --hot
        """,
    )

    parser.add_argument(
        "--sources",
        help="Comma-separated source names (e.g., 'slickdeals,craigslist')",
    )

    parser.add_argument(
        "--category",
        help="Optional category filter (e.g., 'laptops', 'phones')",
    )

    parser.add_argument(
        "--city",
        help="Craigslist city code (e.g., 'sfbay', 'newyork')",
    )

    parser.add_argument(
        "--search",
        dest="query",
        help="Search query instead of the regular listing",
    )

    parser.add_argument(
        "--hot",
        action="store_true",
        help="Show hot deals from the curated aggregators",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of deals to display (default: 10)",
    )

    args = parser.parse_args()
    sources = [s.strip() for s in args.sources.split(",")] if args.sources else None

    asyncio.run(
        run_aggregator(
            sources=sources,
            category=args.category,
            city=args.city,
            query=args.query,
            hot=args.hot,
            limit=args.limit,
        )
    )


if __name__ == "__main__":
    main()
