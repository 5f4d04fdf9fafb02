"""Marketplace aggregator.

Central service that fans a request out to the selected source adapters,
waits for every one of them to settle, and turns the combined raw deals
into one normalized, deduplicated, scored and ranked result. One slow or
failing source never voids the others: its failure is reported in the
per-source status list instead.
"""

import asyncio
import time
from dataclasses import replace
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from dealradar.marketplace.cache import (
    DealCache,
    cache_key_for_deals,
    cache_key_for_hot_deals,
    cache_key_for_search,
)
from dealradar.marketplace.normalizer import deduplicate_deals, normalize_deals
from dealradar.marketplace.scoring import detect_suspicious_deals, enhance_deals_with_scores
from dealradar.marketplace.sources.base import SourceAdapter
from dealradar.marketplace.sources.craigslist import CraigslistAdapter
from dealradar.marketplace.types import (
    AggregatorResult,
    DealCategory,
    FetchResult,
    MarketplaceSource,
    NormalizedDeal,
    RawDeal,
    SourceStatus,
)


logger = structlog.get_logger(__name__)

# eBay is left out: it needs API credentials
DEFAULT_SOURCES: List[MarketplaceSource] = [
    MarketplaceSource.SLICKDEALS,
    MarketplaceSource.DEALNEWS,
    MarketplaceSource.CRAIGSLIST,
]

# Curated aggregators, where front-page deals are already vetted
HOT_DEAL_SOURCES: List[MarketplaceSource] = [
    MarketplaceSource.SLICKDEALS,
    MarketplaceSource.DEALNEWS,
]

DEFAULT_DEALS_LIMIT = 100
DEFAULT_SEARCH_LIMIT = 50
DEFAULT_HOT_DEALS_LIMIT = 20
# Craigslist fan-out needs a section; laptops is the busiest one
DEFAULT_CRAIGSLIST_CATEGORY = "laptops"

SourceName = Union[str, MarketplaceSource]


def _category_value(category: Optional[Union[str, DealCategory]]) -> Optional[str]:
    if category is None:
        return None
    return category.value if isinstance(category, DealCategory) else str(category)


def _score_of(deal: NormalizedDeal) -> int:
    return deal.ai_score.overall if deal.ai_score else 0


def _limited(result: AggregatorResult, limit: Optional[int], cached: bool = False) -> AggregatorResult:
    return replace(result, deals=result.deals[:limit], cached=cached)


def process_deals(raw_deals: Sequence[RawDeal]) -> List[NormalizedDeal]:
    """Normalize, deduplicate, score, flag and rank raw deals.

    Returns the full ranked list (highest score first, stable on ties).
    """
    deals = normalize_deals(raw_deals)
    deals = deduplicate_deals(deals)
    deals = enhance_deals_with_scores(deals)
    deals = detect_suspicious_deals(deals)
    return sorted(deals, key=_score_of, reverse=True)


class MarketplaceAggregator:
    """Coordinates all marketplace sources behind one query interface."""

    def __init__(
        self,
        adapters: Iterable[SourceAdapter],
        cache: DealCache,
        default_sources: Optional[Sequence[MarketplaceSource]] = None,
        deals_ttl: int = 300,
        search_ttl: int = 180,
        hot_deals_min_score: int = 75,
    ):
        """Initialize the aggregator.

        Args:
            adapters: Source adapters, keyed internally by their source name
            cache: Cache shared by all aggregator calls
            default_sources: Sources used when a call does not pick any
            deals_ttl: Cache TTL in seconds for listings and hot deals
            search_ttl: Cache TTL in seconds for search results
            hot_deals_min_score: Minimum overall score for a hot deal
        """
        self.adapters: Dict[MarketplaceSource, SourceAdapter] = {
            adapter.name: adapter for adapter in adapters
        }
        self.cache = cache
        self.default_sources = list(default_sources or DEFAULT_SOURCES)
        self.deals_ttl = deals_ttl
        self.search_ttl = search_ttl
        self.hot_deals_min_score = hot_deals_min_score
        self.logger = logger.bind(service="marketplace_aggregator")

    async def fetch_deals(
        self,
        sources: Optional[Sequence[SourceName]] = None,
        category: Optional[Union[str, DealCategory]] = None,
        city: Optional[str] = None,
        limit: Optional[int] = DEFAULT_DEALS_LIMIT,
        use_cache: bool = True,
    ) -> AggregatorResult:
        """Fetch live deals from the selected sources.

        Args:
            sources: Source names to query (default: the safe default set)
            category: Optional category filter passed to each source
            city: Craigslist city code; without it Craigslist fans out to the top cities
            limit: Maximum number of deals returned, None for all of them
            use_cache: Read from and write to the cache

        Returns:
            AggregatorResult; never raises because of a source failure

        The cache holds the full ranked list, so one entry serves every limit.
        """
        started = time.monotonic()
        selected = self._select(sources)
        category_key = _category_value(category)
        cache_key = cache_key_for_deals([s.value for s in selected], category_key, city)

        if use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return _limited(cached, limit, cached=True)

        calls = [(source, self._fetch_call(source, category_key, city)) for source in selected]
        raw_deals, statuses = await self._gather(calls)

        ranked = process_deals(raw_deals)
        result = AggregatorResult(
            deals=ranked,
            sources=statuses,
            total_fetched=len(raw_deals),
            total_after_dedup=len(ranked),
            fetch_time=self._elapsed_ms(started),
            cached=False,
        )

        self.logger.info(
            "deals_aggregated",
            sources=[s.value for s in selected],
            category=category_key,
            total_fetched=result.total_fetched,
            total_after_dedup=result.total_after_dedup,
            returned=len(result.deals[:limit]),
            fetch_time_ms=result.fetch_time,
        )

        if use_cache:
            self.cache.set(cache_key, result, ttl=self.deals_ttl)

        return _limited(result, limit)

    async def search(
        self,
        query: str,
        sources: Optional[Sequence[SourceName]] = None,
        city: Optional[str] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
        use_cache: bool = True,
    ) -> AggregatorResult:
        """Search every selected source and keep deals mentioning the query.

        ``total_after_dedup`` is counted before the query filter.
        """
        started = time.monotonic()
        selected = self._select(sources)
        cache_key = cache_key_for_search(query, [s.value for s in selected])

        if use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return _limited(cached, limit, cached=True)

        calls = [(source, self._search_call(source, query, city)) for source in selected]
        raw_deals, statuses = await self._gather(calls)

        ranked = process_deals(raw_deals)
        query_lower = query.lower()
        matching = [
            deal
            for deal in ranked
            if query_lower in deal.title.lower() or query_lower in deal.description.lower()
        ]

        result = AggregatorResult(
            deals=matching,
            sources=statuses,
            total_fetched=len(raw_deals),
            total_after_dedup=len(ranked),
            fetch_time=self._elapsed_ms(started),
            cached=False,
            query=query,
        )

        self.logger.info(
            "search_aggregated",
            query=query,
            total_fetched=result.total_fetched,
            matching=len(matching),
            fetch_time_ms=result.fetch_time,
        )

        if use_cache:
            self.cache.set(cache_key, result, ttl=self.search_ttl)

        return _limited(result, limit)

    async def get_hot_deals(self, limit: int = DEFAULT_HOT_DEALS_LIMIT) -> AggregatorResult:
        """High-scoring deals from the curated aggregators."""
        started = time.monotonic()
        cache_key = cache_key_for_hot_deals()

        cached = self.cache.get(cache_key)
        if cached is not None:
            return _limited(cached, limit, cached=True)

        # Ranked by score, so the hot deals are a prefix of the listing
        result = await self.fetch_deals(sources=HOT_DEAL_SOURCES, limit=None, use_cache=False)
        hot = [deal for deal in result.deals if _score_of(deal) >= self.hot_deals_min_score]

        hot_result = replace(
            result,
            deals=hot,
            fetch_time=self._elapsed_ms(started),
            cached=False,
        )
        self.cache.set(cache_key, hot_result, ttl=self.deals_ttl)
        return _limited(hot_result, limit)

    def get_source_stats(self) -> List[Dict[str, Any]]:
        """Quota usage per source, for monitoring."""
        return [
            {"name": name.value, **adapter.get_stats(), "configured": adapter.is_configured()}
            for name, adapter in self.adapters.items()
        ]

    def is_source_configured(self, name: SourceName) -> bool:
        source = self._parse_source(name)
        adapter = self.adapters.get(source) if source else None
        return bool(adapter and adapter.is_configured())

    def is_ebay_configured(self) -> bool:
        return self.is_source_configured(MarketplaceSource.EBAY)

    def get_cities(self) -> List[Dict[str, str]]:
        return CraigslistAdapter.get_cities()

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.get_stats()

    def clear_cache(self) -> None:
        self.cache.clear()

    def _select(self, sources: Optional[Sequence[SourceName]]) -> List[MarketplaceSource]:
        """Resolve requested names to known adapters, dropping unknown ones."""
        requested = sources if sources else self.default_sources
        selected: List[MarketplaceSource] = []
        for name in requested:
            source = self._parse_source(name)
            if source is None or source not in self.adapters:
                self.logger.warning("unknown_source_skipped", source=str(name))
                continue
            if source not in selected:
                selected.append(source)
        return selected

    @staticmethod
    def _parse_source(name: SourceName) -> Optional[MarketplaceSource]:
        if isinstance(name, MarketplaceSource):
            return name
        try:
            return MarketplaceSource(str(name).strip().lower())
        except ValueError:
            return None

    def _fetch_call(
        self, source: MarketplaceSource, category: Optional[str], city: Optional[str]
    ) -> Awaitable[FetchResult]:
        adapter = self.adapters[source]
        if isinstance(adapter, CraigslistAdapter):
            if city:
                return adapter.fetch_deals(category, city)
            return adapter.fetch_multiple_cities(category or DEFAULT_CRAIGSLIST_CATEGORY)
        return adapter.fetch_deals(category)

    def _search_call(self, source: MarketplaceSource, query: str, city: Optional[str]) -> Awaitable[FetchResult]:
        adapter = self.adapters[source]
        if isinstance(adapter, CraigslistAdapter):
            return adapter.search_deals(query, city)
        return adapter.search_deals(query)

    async def _gather(
        self, calls: List[Tuple[MarketplaceSource, Awaitable[FetchResult]]]
    ) -> Tuple[List[RawDeal], List[SourceStatus]]:
        """Wait for every call to settle and collect deals plus per-source status."""
        results = await asyncio.gather(*(call for _, call in calls), return_exceptions=True)

        raw_deals: List[RawDeal] = []
        statuses: List[SourceStatus] = []

        for (source, _), result in zip(calls, results):
            if isinstance(result, BaseException):
                # Adapters are not supposed to raise; treat it as a failed source
                error = str(result) or type(result).__name__ or "Unknown error"
                self.logger.error("source_raised", source=source.value, error=error)
                statuses.append(SourceStatus(name=source, count=0, success=False, error=error))
                continue

            raw_deals.extend(result.deals)
            statuses.append(
                SourceStatus(
                    name=source,
                    count=len(result.deals),
                    success=result.success,
                    error=result.error,
                )
            )

        return raw_deals, statuses

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
