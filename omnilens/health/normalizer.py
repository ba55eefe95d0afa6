"""Run normalization - one logical record per (workflow, day)

A workflow can be triggered many times a day. The dashboard shows one state
per workflow per day: the most recently *started* run, whether or not it has
finished. Earlier runs are kept on the bucket for drill-down.
"""

from collections.abc import Iterable
from datetime import UTC, date, tzinfo

from omnilens.core import get_logger
from omnilens.domain.runs import DailyBucket, Run
from omnilens.utils.datetime_utils import ensure_aware, to_day

logger = get_logger(__name__)


def _recency_key(run: Run) -> tuple:
    # Equal start times fall back to the provider id (later runs get larger ids)
    return (ensure_aware(run.started_at), run.id)


class RunNormalizer:
    """Collapse raw runs into DailyBuckets"""

    def __init__(self, tz: tzinfo = UTC):
        """Initialize normalizer

        Args:
            tz: Timezone used to decide which calendar day a run belongs to
        """
        self.tz = tz

    def day_of(self, run: Run) -> date:
        return to_day(run.started_at, self.tz)

    def normalize(self, runs: Iterable[Run]) -> list[DailyBucket]:
        """Collapse runs into one bucket per (day, workflow)

        Runs are visited most-recent-first; the first run seen for a
        workflow/day becomes ``latest`` and every later visit only bumps the
        count and appends to the drill-down list.

        Args:
            runs: Unordered runs, normally for a single day

        Returns:
            Buckets ordered by day ascending, and within a day by the start
            time of their latest run, most recent first
        """
        ordered = sorted(runs, key=_recency_key, reverse=True)
        buckets: dict[tuple[date, int], DailyBucket] = {}

        for run in ordered:
            key = (self.day_of(run), run.workflow_id)
            bucket = buckets.get(key)
            if bucket is None:
                buckets[key] = DailyBucket(day=key[0], workflow_id=run.workflow_id, latest=run)
            else:
                bucket.add(run)

        for bucket in buckets.values():
            if bucket.had_duplicates:
                logger.debug(
                    f"Workflow {bucket.workflow_id} had {bucket.count} runs on {bucket.day.isoformat()} - using latest",
                    extra={"workflow_id": bucket.workflow_id, "day": bucket.day.isoformat(), "run_count": bucket.count},
                )

        # dict preserves the most-recent-first insertion order; the sort is stable
        return sorted(buckets.values(), key=lambda b: b.day)

    def partition_by_day(self, runs: Iterable[Run]) -> dict[date, list[Run]]:
        """Group runs of a date range by the calendar day they started on

        Returns:
            Mapping of day -> runs, in ascending day order
        """
        by_day: dict[date, list[Run]] = {}
        for run in runs:
            by_day.setdefault(self.day_of(run), []).append(run)
        return dict(sorted(by_day.items()))

    def normalize_range(self, runs: Iterable[Run]) -> dict[date, list[DailyBucket]]:
        """Normalize a multi-day range, day by day

        Returns:
            Mapping of day -> that day's buckets, in ascending day order
        """
        return {day: self.normalize(day_runs) for day, day_runs in self.partition_by_day(runs).items()}

    @staticmethod
    def build_histories(buckets_by_day: dict[date, list[DailyBucket]]) -> dict[int, list[DailyBucket]]:
        """Re-key day-major buckets into per-workflow histories (ascending by day)"""
        histories: dict[int, list[DailyBucket]] = {}
        for day in sorted(buckets_by_day):
            for bucket in buckets_by_day[day]:
                histories.setdefault(bucket.workflow_id, []).append(bucket)
        return histories


def normalize(runs: Iterable[Run], tz: tzinfo = UTC) -> list[DailyBucket]:
    """Module-level shortcut for RunNormalizer(tz).normalize(runs)"""
    return RunNormalizer(tz).normalize(runs)
