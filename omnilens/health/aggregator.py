"""
Windowed Aggregator - fetch, normalize, classify, memoize

Orchestrates one repository query:

    workflow source -> graph builder ------------------------> TriggerGraph
    run source -> normalizer -> classifier -> WindowHealthSummary / DayOverDayReport

Every result is memoized in a WindowCache keyed by repository and the
whole-day window it covers. Provider failures propagate as ProviderError
subclasses and nothing is cached for the failed query.

Usage:
    aggregator = WindowedAggregator(source, source)
    summary = await aggregator.window_health("octo/repo", days=30)
    graph = await aggregator.trigger_graph("octo/repo")
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, date, datetime, timedelta
from typing import TypeVar

from omnilens.collectors.errors import ProviderError
from omnilens.collectors.sources import RunSource, WorkflowSource
from omnilens.core import HealthConfig, get_logger, log_with_context
from omnilens.domain.health import DayOverDayReport, OverviewMetrics, WindowHealthSummary
from omnilens.domain.runs import DailyBucket
from omnilens.domain.workflows import TriggerGraph, Workflow
from omnilens.health.cache import WindowCache
from omnilens.health.classifier import HealthClassifier
from omnilens.health.graph_builder import TriggerGraphBuilder
from omnilens.health.normalizer import RunNormalizer
from omnilens.health.overview import calculate_overview
from omnilens.utils.datetime_utils import coerce_day, normalize_window, window_start_for
from omnilens.utils.error_handling import log_and_raise

logger = get_logger(__name__)

T = TypeVar("T")

DayInput = date | datetime | str


class WindowedAggregator:
    """
    Answers graph and health queries for a repository, with TTL memoization.

    Attributes:
        run_source: Collaborator returning raw runs
        workflow_source: Collaborator returning workflows with configuration text
        cache: WindowCache shared by every query of this aggregator
    """

    def __init__(
        self,
        run_source: RunSource,
        workflow_source: WorkflowSource,
        config: HealthConfig | None = None,
        cache: WindowCache | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        """
        Initialize aggregator.

        Args:
            run_source: RunSource implementation
            workflow_source: WorkflowSource implementation
            config: Health settings (TTL, windows, timezone); defaults apply when omitted
            cache: Cache to use; a new one is built from config when omitted
            now: Clock used to decide "today"
        """
        self.config = config or HealthConfig()
        self.tz = self.config.tzinfo
        self.run_source = run_source
        self.workflow_source = workflow_source
        self.cache = cache or WindowCache(
            ttl_seconds=self.config.cache_ttl_seconds,
            tz=self.tz,
            max_size=self.config.cache_max_entries,
        )
        self.normalizer = RunNormalizer(self.tz)
        self.classifier = HealthClassifier(self.config.recent_window_days)
        self.graph_builder = TriggerGraphBuilder()
        self._now = now

    def today(self) -> date:
        return self._now().astimezone(self.tz).date()

    async def _provider_call(self, operation: str, repository: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except ProviderError as e:
            log_and_raise(logger, e, {"repository": repository, "status_code": e.status_code}, operation)

    # ------------------------------------------------------------------
    # Collaborator access
    # ------------------------------------------------------------------

    async def fetch_workflows(self, repository: str, active_only: bool = False) -> list[Workflow]:
        workflows = await self._provider_call(
            "Workflow fetch", repository, lambda: self.workflow_source.fetch_workflows(repository)
        )
        if active_only:
            workflows = [w for w in workflows if w.is_active]
        return workflows

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def trigger_graph(self, repository: str) -> TriggerGraph:
        """
        Trigger graph of a repository (rebuilt wholesale on every cache miss).

        Raises:
            ProviderError: If the workflow source fails
        """

        async def compute() -> TriggerGraph:
            return self.graph_builder.build(await self.fetch_workflows(repository))

        return await self.cache.aget_or_compute(repository, None, None, compute, kind="trigger_graph")

    async def daily_buckets(
        self, repository: str, start: DayInput, end: DayInput
    ) -> dict[date, list[DailyBucket]]:
        """
        Normalized buckets for every day in [start, end] that had runs.

        Args:
            repository: "owner/name"
            start: First day (date, datetime or ISO string)
            end: Last day (inclusive)

        Returns:
            Mapping of day -> buckets, ascending by day

        Raises:
            WindowError: If start is after end
            ProviderError: If the run source fails
        """
        window_start, window_end = normalize_window(start, end, self.tz)

        async def compute() -> dict[date, list[DailyBucket]]:
            runs = await self._provider_call(
                "Run fetch", repository, lambda: self.run_source.fetch_runs(repository, window_start, window_end)
            )
            return self.normalizer.normalize_range(runs)

        return await self.cache.aget_or_compute(repository, window_start, window_end, compute, kind="buckets")

    async def window_health(
        self,
        repository: str,
        days: int | None = None,
        end: DayInput | None = None,
        workflows: Iterable[Workflow] | None = None,
    ) -> WindowHealthSummary:
        """
        Classify every workflow of a repository over an N-day window.

        Args:
            repository: "owner/name"
            days: Window length (defaults to the configured default window)
            end: Last day of the window (defaults to today)
            workflows: Tracked workflows that must appear even without runs

        Returns:
            WindowHealthSummary (per-workflow HealthRecords plus buckets)

        Raises:
            WindowError: If days is not positive
            ProviderError: If the run source fails
        """
        window_days = days if days is not None else self.config.default_window_days
        end_day = coerce_day(end, self.tz) if end is not None else self.today()
        start_day = window_start_for(end_day, window_days)
        workflow_ids = sorted({w.id for w in workflows}) if workflows is not None else []
        kind = "window_health:" + ",".join(str(i) for i in workflow_ids)

        async def compute() -> WindowHealthSummary:
            buckets_by_day = await self.daily_buckets(repository, start_day, end_day)
            return self.classifier.summarize_window(buckets_by_day, start_day, end_day, workflow_ids)

        summary = await self.cache.aget_or_compute(repository, start_day, end_day, compute, kind=kind)
        log_with_context(
            logger,
            "info",
            f"Window health for {repository}: {summary.transitions.total} transitions over {window_days} days",
            repository=repository,
            window_days=window_days,
            workflow_count=len(summary.records),
        )
        return summary

    async def day_over_day(
        self,
        repository: str,
        today: DayInput | None = None,
        workflows: Iterable[Workflow] | None = None,
    ) -> DayOverDayReport:
        """
        Today-vs-yesterday status of each active workflow.

        Args:
            repository: "owner/name"
            today: The day to report on (defaults to today)
            workflows: Workflows to report on; fetched (active only) when omitted

        Raises:
            ProviderError: If a source fails
        """
        today_day = coerce_day(today, self.tz) if today is not None else self.today()
        workflows = list(workflows) if workflows is not None else None
        yesterday_day = today_day - timedelta(days=1)

        async def compute() -> DayOverDayReport:
            if workflows is None:
                tracked, buckets_by_day = await asyncio.gather(
                    self.fetch_workflows(repository, active_only=True),
                    self.daily_buckets(repository, yesterday_day, today_day),
                )
            else:
                tracked = [w for w in workflows if w.is_active]
                buckets_by_day = await self.daily_buckets(repository, yesterday_day, today_day)
            return self.classifier.day_over_day(
                today_day,
                buckets_by_day.get(today_day, []),
                buckets_by_day.get(yesterday_day, []),
                tracked,
            )

        kind = "day_over_day" if workflows is None else "day_over_day:" + ",".join(
            str(w.id) for w in sorted(workflows, key=lambda w: w.id)
        )
        return await self.cache.aget_or_compute(repository, yesterday_day, today_day, compute, kind=kind)

    async def overview(
        self,
        repository: str,
        day: DayInput | None = None,
        workflows: Iterable[Workflow] | None = None,
    ) -> tuple[OverviewMetrics, list[DailyBucket]]:
        """
        One day's overview metrics and the buckets behind them.

        Raises:
            ProviderError: If a source fails
        """
        target = coerce_day(day, self.tz) if day is not None else self.today()
        buckets = (await self.daily_buckets(repository, target, target)).get(target, [])
        tracked = list(workflows) if workflows is not None else await self.fetch_workflows(repository)
        return calculate_overview(buckets, tracked), buckets
