"""Rate-limited fetch executor shared by every marketplace source.

Each source adapter owns one executor. The executor wraps a single
asynchronous unit of work with:

- a daily request quota that resets at local midnight,
- a single-slot pacer that keeps dispatches at least
  ``60 / requests_per_minute`` seconds apart,
- exponential-backoff retries (1s, 2s, 4s, ...) via tenacity,
- a per-attempt timeout so a hung source cannot stall the aggregator.

Request counters are recorded before each attempt runs, so failed attempts
consume quota too.
"""

import asyncio
import time
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from dealradar.core.exceptions import RateLimitExceeded, SourceError
from dealradar.marketplace.types import FetchResult, RateLimitInfo, RawDeal, SourceConfig


logger = structlog.get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def next_local_midnight(now: datetime) -> datetime:
    """Return the first instant of the day after ``now`` (naive local time)."""
    tomorrow = now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, datetime.min.time())


class RateLimitedExecutor:
    """Paces, meters and retries calls against one external source."""

    def __init__(
        self,
        config: SourceConfig,
        timeout: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the executor.

        Args:
            config: Static source configuration (name, rate limits)
            timeout: Per-attempt timeout in seconds, None to disable
            sleep: Coroutine used for pacing and backoff waits
            clock: Monotonic clock used for pacing
            now: Local wall clock used for the daily quota window
        """
        self.config = config
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock
        self._now = now

        self.request_count = 0
        self.daily_request_count = 0
        self._last_request_time: Optional[float] = None
        self._daily_reset_time: datetime = now()
        self._quota_day: date = self._daily_reset_time.date()
        self._pace_lock = asyncio.Lock()

        self.logger = logger.bind(source=config.name.value)

    @property
    def source_name(self) -> str:
        return self.config.name.value

    @property
    def remaining_today(self) -> int:
        return max(0, self.config.rate_limit.requests_per_day - self.daily_request_count)

    @property
    def reset_at(self) -> datetime:
        return next_local_midnight(self._daily_reset_time)

    async def execute(
        self,
        unit_of_work: Callable[[], Awaitable[T]],
        max_retries: int = 3,
    ) -> T:
        """Run ``unit_of_work`` under quota, pacing and retry discipline.

        Args:
            unit_of_work: Zero-argument coroutine factory; called once per attempt
            max_retries: Total number of attempts

        Returns:
            Whatever the unit of work returns

        Raises:
            RateLimitExceeded: If the daily quota is used up (no attempt is made)
            Exception: The last attempt's error once all attempts fail
        """
        self._roll_over_if_new_day()

        if self.daily_request_count >= self.config.rate_limit.requests_per_day:
            self.logger.warning(
                "daily_quota_exhausted",
                requests_today=self.daily_request_count,
                limit=self.config.rate_limit.requests_per_day,
            )
            raise RateLimitExceeded(self.source_name)

        await self._pace()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, max_retries)),
            wait=wait_exponential(multiplier=1, exp_base=2),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    self._record_request()
                    result = await self._run_attempt(unit_of_work)
        except Exception as e:
            self.logger.error("fetch_failed", attempts=max(1, max_retries), error=str(e))
            raise

        return result

    def reset_daily(self) -> None:
        """Zero the daily counter. Called by the midnight job."""
        self.daily_request_count = 0
        self._daily_reset_time = self._now()
        self._quota_day = self._daily_reset_time.date()
        self.logger.info("daily_quota_reset", reset_at=self._daily_reset_time.isoformat())

    def get_stats(self) -> Dict[str, Any]:
        """Counters for monitoring."""
        return {
            "source": self.source_name,
            "enabled": self.config.enabled,
            "requests_today": self.daily_request_count,
            "remaining_today": self.remaining_today,
        }

    def make_result(
        self,
        deals: List[RawDeal],
        started: float,
        error: Optional[str] = None,
        success: Optional[bool] = None,
    ) -> FetchResult:
        """Build a FetchResult stamped with this source's quota state.

        Args:
            deals: Parsed deals (empty on failure)
            started: ``time.monotonic()`` value taken when the fetch began
            error: Error or explanatory message
            success: Overrides the default of ``error is None``
        """
        return FetchResult(
            source=self.config.name,
            deals=deals,
            fetched_at=datetime.now(),
            duration=int((time.monotonic() - started) * 1000),
            success=(error is None) if success is None else success,
            error=error,
            rate_limit=RateLimitInfo(remaining=self.remaining_today, reset_at=self.reset_at),
        )

    async def _pace(self) -> None:
        min_interval = 60.0 / self.config.rate_limit.requests_per_minute
        async with self._pace_lock:
            if self._last_request_time is not None:
                elapsed = self._clock() - self._last_request_time
                if elapsed < min_interval:
                    wait = min_interval - elapsed
                    self.logger.debug("pacing_request", wait_seconds=round(wait, 3))
                    await self._sleep(wait)
            self._last_request_time = self._clock()

    def _record_request(self) -> None:
        self._last_request_time = self._clock()
        self.request_count += 1
        self.daily_request_count += 1

    async def _run_attempt(self, unit_of_work: Callable[[], Awaitable[T]]) -> T:
        if self.timeout is None:
            return await unit_of_work()
        try:
            return await asyncio.wait_for(unit_of_work(), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise SourceError(self.source_name, f"request timed out after {self.timeout:g}s")

    def _roll_over_if_new_day(self) -> None:
        # Backstop for the scheduled midnight reset
        if self._now().date() != self._quota_day:
            self.reset_daily()

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        self.logger.warning(
            "fetch_attempt_failed",
            attempt=retry_state.attempt_number,
            retry_in=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(error),
        )
