"""Prospect monitoring pipeline.

``ProspectMonitor`` chains search and analysis for one prospect.
``BatchMonitor`` walks a list of prospects one at a time with a pause between
them, turning per-prospect errors into failure records so the batch always
completes.
"""

from __future__ import annotations

import asyncio
from contextlib import aclosing
from datetime import datetime, timezone
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
    List,
    Optional,
    Sequence,
    TypeVar,
)

from .analysis import AnthropicAnalysisProvider
from .config import MonitorSettings, require_string_list
from .errors import ProspectMonitorError, ValidationError, wrap_error
from .logging_config import get_logger
from .models import (
    BatchResult,
    BatchSummary,
    FailureRecord,
    MonitorResult,
    ProspectOutcome,
)
from .search import BraveSearchProvider

logger = get_logger("monitor")

MAX_QUERY_KEYWORDS = 4
CANCELLED_MESSAGE = "Monitoring cancelled"

T = TypeVar("T")


def build_search_query(prospect: str, keywords: Sequence[str], year: str) -> str:
    """Build the news query for a prospect, e.g. ``"Acme" (funding OR launch) 2025``."""
    terms = " OR ".join(keywords[:MAX_QUERY_KEYWORDS])
    return f'"{prospect}" ({terms}) {year}'


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def rate_limited(
    items: Iterable[T],
    delay: float,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> AsyncIterator[T]:
    """Yield ``items`` in order, pausing ``delay`` seconds between consecutive items."""
    for index, item in enumerate(items):
        if index and delay > 0:
            await sleep(delay)
        yield item


class ProspectMonitor:
    """Runs search then analysis for a single prospect."""

    def __init__(
        self,
        settings: MonitorSettings,
        search_provider: Optional[BraveSearchProvider] = None,
        analysis_provider: Optional[AnthropicAnalysisProvider] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings
        self.search_provider = search_provider or BraveSearchProvider(settings)
        self.analysis_provider = analysis_provider or AnthropicAnalysisProvider(settings)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def monitor_one(self, prospect: Any, keywords: Any) -> MonitorResult:
        """Search for recent news about ``prospect`` and classify it.

        Raises:
            ValidationError: If the prospect or keywords are missing
            ConfigurationError: If a provider credential is missing
            UpstreamError: If either provider call fails
        """
        if not isinstance(prospect, str) or not prospect.strip() or not keywords:
            raise ValidationError("Prospect and keywords are required")
        keywords = require_string_list(keywords, "Keywords")
        prospect = prospect.strip()

        now = self.clock()
        query = build_search_query(prospect, keywords, self.settings.resolve_query_year(now))
        logger.info(f"Monitoring {prospect} with query: {query}")

        try:
            search = await self.search_provider.search(query)
        except ProspectMonitorError as exc:
            raise wrap_error(exc, "Search failed") from exc

        try:
            verdict = await self.analysis_provider.analyze(prospect, keywords, list(search.results))
        except ProspectMonitorError as exc:
            raise wrap_error(exc, "Analysis failed") from exc

        return MonitorResult(
            prospect=prospect,
            search_results=list(search.results),
            analysis=verdict,
            search_query=query,
            total_results=search.total,
            timestamp=utc_timestamp(self.clock()),
        )


class BatchMonitor:
    """Monitors prospects sequentially with a fixed pause between them."""

    def __init__(
        self,
        monitor: ProspectMonitor,
        delay_seconds: float = 1.0,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.monitor = monitor
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    async def monitor_batch(
        self,
        prospects: Any,
        keywords: Any,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """Monitor every prospect in order and summarize the outcomes.

        A failing prospect becomes a ``FailureRecord``; the remaining prospects
        are still processed. When ``cancel_event`` is set, prospects that have
        not started yet are recorded as cancelled.

        Raises:
            ValidationError: If either list is missing, not a list, or empty
        """
        if not isinstance(prospects, (list, tuple)) or not prospects:
            raise ValidationError("Prospects array is required")
        if not isinstance(keywords, (list, tuple)) or not keywords:
            raise ValidationError("Keywords array is required")

        logger.info(f"Starting batch monitoring of {len(prospects)} prospects")
        outcomes: List[ProspectOutcome] = []
        cancelled = False

        paced = rate_limited(prospects, self.delay_seconds, sleep=self.sleep)
        async with aclosing(paced):
            async for prospect in paced:
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break
                outcomes.append(await self._monitor_prospect(prospect, list(keywords)))

        if cancelled:
            remaining = prospects[len(outcomes):]
            logger.warning(f"Batch cancelled, {len(remaining)} prospects not processed")
            outcomes.extend(FailureRecord(prospect=p, error=CANCELLED_MESSAGE) for p in remaining)

        summary = BatchSummary.from_outcomes(outcomes)
        logger.info(
            f"Batch completed: {summary.successful}/{summary.total} successful, "
            f"{summary.failed} failed, {summary.with_news} with news"
        )
        return BatchResult(outcomes=outcomes, summary=summary, cancelled=cancelled)

    async def _monitor_prospect(self, prospect: Any, keywords: List[str]) -> ProspectOutcome:
        try:
            return await self.monitor.monitor_one(prospect, keywords)
        except ProspectMonitorError as exc:
            logger.error(f"Error monitoring {prospect}: {exc.message}")
            return FailureRecord(prospect=prospect, error=exc.message)
        except Exception as exc:
            logger.exception(f"Unexpected error monitoring {prospect}: {exc}")
            return FailureRecord(prospect=prospect, error=str(exc))
