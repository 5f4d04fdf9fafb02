"""Source adapter interface.

Every marketplace source implements SourceAdapter. Adapters own a
RateLimitedExecutor rather than inheriting fetch behavior, and they never
let an exception escape fetch_deals()/search_deals(): failures come back as
a FetchResult with success=False so the aggregator can keep going.
"""

import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional

import httpx
import structlog

from dealradar.marketplace.fetcher import RateLimitedExecutor
from dealradar.marketplace.types import FetchResult, MarketplaceSource, RawDeal, SourceConfig


DEFAULT_USER_AGENT = "DealRadar Deal Aggregator/1.0"


class SourceAdapter(ABC):
    """Abstract interface for all marketplace sources."""

    def __init__(
        self,
        config: SourceConfig,
        executor: Optional[RateLimitedExecutor] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        """Initialize the adapter.

        Args:
            config: Static source configuration
            executor: Shared executor; a fresh one is built from config if omitted
            http_client: httpx client to reuse; one is opened per request if omitted
            timeout: Per-attempt timeout in seconds
            user_agent: User-Agent header sent with every request
        """
        self.config = config
        self.executor = executor or RateLimitedExecutor(config, timeout=timeout)
        self.http_client = http_client
        self.timeout = timeout
        self.user_agent = user_agent
        self.logger = structlog.get_logger(__name__).bind(source=config.name.value)

    @property
    def name(self) -> MarketplaceSource:
        return self.config.name

    @abstractmethod
    async def fetch_deals(self, category: Optional[str] = None) -> FetchResult:
        """Fetch current deals, optionally for one category."""

    @abstractmethod
    async def search_deals(self, query: str) -> FetchResult:
        """Search this source for deals matching a free-text query."""

    def is_configured(self) -> bool:
        """Whether the credentials this source needs are present."""
        return True

    def get_stats(self) -> Dict[str, Any]:
        return self.executor.get_stats()

    def reset_daily(self) -> None:
        self.executor.reset_daily()

    async def _collect(
        self,
        unit_of_work: Callable[[], Awaitable[List[RawDeal]]],
        max_retries: int = 3,
    ) -> FetchResult:
        """Run a fetch through the executor and fold any failure into the result."""
        started = time.monotonic()
        try:
            deals = await self.executor.execute(unit_of_work, max_retries=max_retries)
        except Exception as e:
            error = str(e) or type(e).__name__
            self.logger.error("source_fetch_failed", error=error)
            return self.executor.make_result([], started, error=error)

        self.logger.info("source_fetch_complete", count=len(deals))
        return self.executor.make_result(deals, started)

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.http_client is not None:
            yield self.http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            yield client

    async def _get_text(self, url: str, params: Optional[Mapping[str, str]] = None) -> str:
        async with self._client() as client:
            response = await client.get(url, params=params, headers={"User-Agent": self.user_agent})
            response.raise_for_status()
            return response.text
