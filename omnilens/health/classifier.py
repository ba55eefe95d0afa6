"""Workflow health classification

Turns per-workflow DailyBucket histories into trend categories:

- Day-over-day transitions between adjacent days (consistent / improved /
  regressed / still failing)
- Window-level classification over N days, where a clean recent sub-window
  (7 days by default) is what earns "consistent"
- Today-vs-yesterday status per tracked workflow
- Whole-repository window summaries for the 30/90-day cards
"""

from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from omnilens.core import get_logger
from omnilens.domain.health import (
    DayOverDayRecord,
    DayOverDayReport,
    DayTotals,
    HealthRecord,
    HealthStatus,
    RunOutcome,
    TransitionCounts,
    WindowHealthSummary,
)
from omnilens.domain.runs import DailyBucket, RunConclusion
from omnilens.domain.workflows import Workflow
from omnilens.health.normalizer import RunNormalizer
from omnilens.utils.datetime_utils import WindowError, window_start_for
from omnilens.utils.workflow_names import clean_workflow_name, title_from_path

logger = get_logger(__name__)

_TRANSITIONS = {
    (RunOutcome.PASSED, RunOutcome.PASSED): HealthStatus.CONSISTENT,
    (RunOutcome.FAILED, RunOutcome.PASSED): HealthStatus.IMPROVED,
    (RunOutcome.PASSED, RunOutcome.FAILED): HealthStatus.REGRESSED,
    (RunOutcome.FAILED, RunOutcome.FAILED): HealthStatus.STILL_FAILING,
}


def bucket_outcome(bucket: DailyBucket) -> RunOutcome:
    """Outcome of a day from its latest run

    success -> passed; no conclusion yet while still queued/running -> running;
    anything else (failure, cancelled, timed out, ...) -> failed.
    """
    latest = bucket.latest
    if latest.conclusion is RunConclusion.SUCCESS:
        return RunOutcome.PASSED
    if latest.conclusion is None and not latest.status.is_terminal:
        return RunOutcome.RUNNING
    return RunOutcome.FAILED


def compare_buckets(previous: DailyBucket | None, current: DailyBucket | None) -> HealthStatus | None:
    """Transition between two adjacent days, or None when either is missing or running"""
    if previous is None or current is None:
        return None
    key = (bucket_outcome(previous), bucket_outcome(current))
    return _TRANSITIONS.get(key)


class HealthClassifier:
    """Classify workflow health from DailyBucket histories"""

    def __init__(self, recent_window_days: int = 7):
        """Initialize classifier

        Args:
            recent_window_days: Length of the recent sub-window that must be
                failure-free (with at least one pass) for "consistent"
        """
        if recent_window_days <= 0:
            raise WindowError(f"Recent window must be positive, got {recent_window_days}")
        self.recent_window_days = recent_window_days

    def count_transitions(
        self,
        history: Sequence[DailyBucket],
        day_sequence: Sequence[date] | None = None,
    ) -> TransitionCounts:
        """Count day-over-day transitions in one workflow's history

        Args:
            history: One workflow's buckets
            day_sequence: Ordered days that count as adjacent to each other
                (e.g. every day on which the repository had any run). When
                omitted, adjacency means consecutive calendar days.

        Returns:
            TransitionCounts where every adjacent pair of non-running buckets
            contributed exactly one increment
        """
        by_day = {bucket.day: bucket for bucket in history}
        counts = TransitionCounts()

        if day_sequence is None:
            pairs = [(day - timedelta(days=1), day) for day in sorted(by_day)]
        else:
            ordered = list(day_sequence)
            pairs = list(zip(ordered, ordered[1:]))

        for previous_day, current_day in pairs:
            transition = compare_buckets(by_day.get(previous_day), by_day.get(current_day))
            if transition is not None:
                counts.increment(transition)
        return counts

    def _status_for(self, passes: int, fails: int, recent_passes: int, recent_fails: int) -> HealthStatus:
        # CONSISTENT is checked before IMPROVED
        if passes + fails == 0:
            return HealthStatus.NO_RUNS_TODAY
        if fails > 0 and passes == 0:
            return HealthStatus.STILL_FAILING
        if passes > fails and recent_fails == 0 and recent_passes > 0:
            return HealthStatus.CONSISTENT
        if passes > fails:
            return HealthStatus.IMPROVED
        if fails > passes:
            return HealthStatus.REGRESSED
        return HealthStatus.UNCLASSIFIED

    def classify(
        self,
        history: Sequence[DailyBucket],
        window_days: int,
        *,
        workflow_id: int | None = None,
        as_of: date | None = None,
        day_sequence: Sequence[date] | None = None,
    ) -> HealthRecord:
        """Classify one workflow over an N-day window

        Precedence:
            1. failures but no passes                        -> still_failing
            2. passes > failures and the recent sub-window
               has no failures and at least one pass         -> consistent
            3. passes > failures                             -> improved
            4. failures > passes                             -> regressed
            5. no non-running buckets                        -> no_runs_today
               equal counts                                  -> unclassified

        Args:
            history: The workflow's buckets, ascending by day
            window_days: Window length in days (ending on as_of, inclusive)
            workflow_id: Workflow id, needed only when history is empty
            as_of: Last day of the window. When omitted the window ends on the
                latest bucket's day, not today, so a workflow that stopped
                running is judged on its last active stretch; pass today to
                classify against the calendar
            day_sequence: Adjacency for transition counting (see count_transitions)

        Returns:
            HealthRecord with status, window and recent counts, and transitions
        """
        if window_days <= 0:
            raise WindowError(f"Window length must be positive, got {window_days}")

        if workflow_id is None and history:
            workflow_id = history[0].workflow_id

        if as_of is None:
            if not history:
                return HealthRecord(workflow_id=workflow_id, status=HealthStatus.NO_RUNS_TODAY, window_days=window_days)
            as_of = max(bucket.day for bucket in history)

        start = window_start_for(as_of, window_days)
        recent_start = max(start, window_start_for(as_of, self.recent_window_days))
        in_window = sorted((b for b in history if start <= b.day <= as_of), key=lambda b: b.day)

        passes = fails = recent_passes = recent_fails = 0
        for bucket in in_window:
            outcome = bucket_outcome(bucket)
            if outcome is RunOutcome.RUNNING:
                continue
            recent = bucket.day >= recent_start
            if outcome is RunOutcome.PASSED:
                passes += 1
                recent_passes += recent
            else:
                fails += 1
                recent_fails += recent

        if day_sequence is not None:
            day_sequence = [day for day in day_sequence if start <= day <= as_of]

        return HealthRecord(
            workflow_id=workflow_id,
            status=self._status_for(passes, fails, recent_passes, recent_fails),
            window_days=window_days,
            pass_count=passes,
            fail_count=fails,
            recent_pass_count=recent_passes,
            recent_fail_count=recent_fails,
            transitions=self.count_transitions(in_window, day_sequence),
            latest=in_window[-1].latest if in_window else None,
        )

    @staticmethod
    def classify_day_over_day(today: DailyBucket | None, yesterday: DailyBucket | None) -> HealthStatus:
        """Today-vs-yesterday status of one workflow

        A run still in progress today is not counted as a failure.
        """
        if today is None:
            return HealthStatus.NO_RUNS_TODAY

        today_failed = bucket_outcome(today) is RunOutcome.FAILED
        yesterday_failed = yesterday is not None and bucket_outcome(yesterday) is RunOutcome.FAILED

        if not today_failed and yesterday_failed:
            return HealthStatus.IMPROVED
        if today_failed and not yesterday_failed:
            return HealthStatus.REGRESSED
        if today_failed and yesterday_failed:
            return HealthStatus.STILL_FAILING
        return HealthStatus.CONSISTENT

    @staticmethod
    def day_totals(bucket: DailyBucket | None) -> DayTotals:
        """Run totals for one bucket, counting every run of the day"""
        if bucket is None:
            return DayTotals()
        successful = sum(1 for run in bucket.runs if run.conclusion is RunConclusion.SUCCESS)
        failed = sum(1 for run in bucket.runs if run.conclusion is not None and run.conclusion is not RunConclusion.SUCCESS)
        return DayTotals(total_runs=bucket.count, successful_runs=successful, failed_runs=failed)

    def day_over_day(
        self,
        today: date,
        today_buckets: Iterable[DailyBucket],
        yesterday_buckets: Iterable[DailyBucket],
        workflows: Iterable[Workflow],
    ) -> DayOverDayReport:
        """Today-vs-yesterday status for each given workflow

        Args:
            today: The "today" day
            today_buckets: Normalized buckets for today
            yesterday_buckets: Normalized buckets for the day before
            workflows: Workflows to report on (typically the active tracked ones)

        Returns:
            DayOverDayReport with one record per workflow
        """
        today_by_id = {bucket.workflow_id: bucket for bucket in today_buckets}
        yesterday_by_id = {bucket.workflow_id: bucket for bucket in yesterday_buckets}

        report = DayOverDayReport(today=today)
        for workflow in workflows:
            today_bucket = today_by_id.get(workflow.id)
            yesterday_bucket = yesterday_by_id.get(workflow.id)
            report.records.append(
                DayOverDayRecord(
                    workflow_id=workflow.id,
                    workflow_name=clean_workflow_name(workflow.name) or title_from_path(workflow.path),
                    status=self.classify_day_over_day(today_bucket, yesterday_bucket),
                    today=self.day_totals(today_bucket),
                    yesterday=self.day_totals(yesterday_bucket),
                )
            )
        return report

    def summarize_window(
        self,
        buckets_by_day: dict[date, list[DailyBucket]],
        window_start: date,
        window_end: date,
        workflow_ids: Iterable[int] | None = None,
    ) -> WindowHealthSummary:
        """Classify every workflow of a repository over one window

        Transitions are counted between consecutive days on which the
        repository had runs, per workflow, and summed across workflows.

        Args:
            buckets_by_day: Normalized buckets keyed by day
            window_start: First day of the window (inclusive)
            window_end: Last day of the window (inclusive)
            workflow_ids: Workflows that must appear in the result even with no
                runs in the window (they classify as no_runs_today)

        Returns:
            WindowHealthSummary for the window
        """
        if window_start > window_end:
            raise WindowError(f"Window start {window_start.isoformat()} is after end {window_end.isoformat()}")

        window_days = (window_end - window_start).days + 1
        in_window = {day: buckets for day, buckets in sorted(buckets_by_day.items()) if window_start <= day <= window_end}
        days = list(in_window)

        summary = WindowHealthSummary(window_start=window_start, window_end=window_end)
        for day, buckets in in_window.items():
            summary.buckets.extend(buckets)
            runtimes = [b.latest.duration_seconds for b in buckets if b.latest.duration_seconds is not None]
            summary.daily_avg_runtime.append(round(sum(runtimes) / len(runtimes)) if runtimes else 0)

        histories = RunNormalizer.build_histories(in_window)
        for workflow_id in workflow_ids or ():
            histories.setdefault(workflow_id, [])

        for workflow_id, history in sorted(histories.items()):
            record = self.classify(
                history,
                window_days,
                workflow_id=workflow_id,
                as_of=window_end,
                day_sequence=days,
            )
            summary.records[workflow_id] = record
            summary.transitions.merge(record.transitions)
            summary.pass_count += record.pass_count
            summary.fail_count += record.fail_count

        logger.debug(
            f"Classified {len(summary.records)} workflows over {window_days} days",
            extra={
                "window_start": window_start.isoformat(),
                "window_end": window_end.isoformat(),
                "workflow_count": len(summary.records),
            },
        )
        return summary
