"""
Workflow health domain models

Day-over-day and N-day health classification results:
    - RunOutcome: passed / failed / running state of a day's latest run
    - HealthStatus: the trend taxonomy shown on the dashboard
    - TransitionCounts: day-over-day transition tallies
    - HealthRecord: one workflow's classification over a window
    - DayTotals / DayOverDayRecord: "today vs yesterday" per workflow
    - OverviewMetrics: one day's run overview for a repository
    - WindowHealthSummary: a repository's whole-window result
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from omnilens.domain.runs import DailyBucket, Run


class RunOutcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    RUNNING = "running"


class HealthStatus(str, Enum):
    """
    Trend category of a workflow.

    UNCLASSIFIED is used when a window has runs but equal pass and fail
    counts, so no trend can be claimed.
    """

    CONSISTENT = "consistent"
    IMPROVED = "improved"
    REGRESSED = "regressed"
    STILL_FAILING = "still_failing"
    NO_RUNS_TODAY = "no_runs_today"
    UNCLASSIFIED = "unclassified"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


TREND_STATUSES = (
    HealthStatus.CONSISTENT,
    HealthStatus.IMPROVED,
    HealthStatus.REGRESSED,
    HealthStatus.STILL_FAILING,
)


@dataclass
class TransitionCounts:
    """
    Day-over-day transition tallies.

    Attributes:
        consistent: passed -> passed
        improved: failed -> passed
        regressed: passed -> failed
        still_failing: failed -> failed
    """

    consistent: int = 0
    improved: int = 0
    regressed: int = 0
    still_failing: int = 0

    @property
    def total(self) -> int:
        return self.consistent + self.improved + self.regressed + self.still_failing

    def increment(self, status: HealthStatus) -> None:
        if status not in TREND_STATUSES:
            raise ValueError(f"{status.value} is not a day-over-day transition")
        setattr(self, status.value, getattr(self, status.value) + 1)

    def merge(self, other: "TransitionCounts") -> None:
        self.consistent += other.consistent
        self.improved += other.improved
        self.regressed += other.regressed
        self.still_failing += other.still_failing

    def to_dict(self) -> dict[str, int]:
        return {
            "consistent": self.consistent,
            "improved": self.improved,
            "regressed": self.regressed,
            "still_failing": self.still_failing,
        }


@dataclass
class HealthRecord:
    """
    Health classification of one workflow over one window.

    Attributes:
        workflow_id: Workflow being classified
        status: Window-level trend category
        window_days: Length of the evaluated window
        pass_count: Passed days across the window
        fail_count: Failed days across the window
        recent_pass_count: Passed days inside the recent sub-window
        recent_fail_count: Failed days inside the recent sub-window
        transitions: Day-over-day transitions inside the window
        latest: Most recent run seen in the window (for display)
    """

    workflow_id: int | None
    status: HealthStatus
    window_days: int
    pass_count: int = 0
    fail_count: int = 0
    recent_pass_count: int = 0
    recent_fail_count: int = 0
    transitions: TransitionCounts = field(default_factory=TransitionCounts)
    latest: Run | None = None

    @property
    def total(self) -> int:
        return self.pass_count + self.fail_count

    @property
    def pass_rate_pct(self) -> float | None:
        """Pass percentage over the window, or None when there is nothing to rate."""
        if self.total == 0:
            return None
        return round(self.pass_count / self.total * 100, 1)

    @property
    def sort_key(self) -> str:
        if self.latest is None:
            return ""
        return (self.latest.path or self.latest.name).split("/")[-1].lower()

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflowId": self.workflow_id,
            "status": self.status.value,
            "windowDays": self.window_days,
            "passCount": self.pass_count,
            "failCount": self.fail_count,
            "recentPassCount": self.recent_pass_count,
            "recentFailCount": self.recent_fail_count,
            "passRatePct": self.pass_rate_pct,
            "transitions": self.transitions.to_dict(),
            "latest": self.latest.to_dict() if self.latest else None,
        }


@dataclass
class DayTotals:
    """Run totals for one workflow on one day."""

    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0

    @property
    def success_rate(self) -> int:
        if self.total_runs == 0:
            return 0
        return round(self.successful_runs / self.total_runs * 100)

    def to_dict(self) -> dict[str, int]:
        return {
            "totalRuns": self.total_runs,
            "successfulRuns": self.successful_runs,
            "failedRuns": self.failed_runs,
            "successRate": self.success_rate,
        }


@dataclass
class DayOverDayRecord:
    """Today-vs-yesterday health of one workflow."""

    workflow_id: int
    workflow_name: str
    status: HealthStatus
    today: DayTotals
    yesterday: DayTotals

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflowId": self.workflow_id,
            "workflowName": self.workflow_name,
            "status": self.status.value,
            "metrics": {"today": self.today.to_dict(), "yesterday": self.yesterday.to_dict()},
        }


@dataclass
class DayOverDayReport:
    """Today-vs-yesterday health for every tracked workflow of a repository."""

    today: date
    records: list[DayOverDayRecord] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        counts = {status: 0 for status in HealthStatus}
        for record in self.records:
            counts[record.status] += 1
        return {
            "totalWorkflows": len(self.records),
            "consistent": counts[HealthStatus.CONSISTENT],
            "improved": counts[HealthStatus.IMPROVED],
            "regressed": counts[HealthStatus.REGRESSED],
            "stillFailing": counts[HealthStatus.STILL_FAILING],
            "noRunsToday": counts[HealthStatus.NO_RUNS_TODAY],
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.today.isoformat(),
            "healthMetrics": [record.to_dict() for record in self.records],
            "summary": self.summary(),
        }


@dataclass
class OverviewMetrics:
    """
    One day's run overview for a repository.

    Attributes:
        completed_runs: Buckets whose latest run completed
        in_progress_runs: Buckets whose latest run is queued or in progress
        passed_runs: Buckets whose latest run succeeded
        failed_runs: Buckets whose latest run concluded with "failure"
        total_runtime_seconds: Summed runtime of completed latest runs
        missing_workflows: Tracked workflow paths with no run that day
    """

    completed_runs: int = 0
    in_progress_runs: int = 0
    passed_runs: int = 0
    failed_runs: int = 0
    total_runtime_seconds: int = 0
    total_workflows: int = 0
    missing_workflows: list[str] = field(default_factory=list)

    @property
    def didnt_run_count(self) -> int:
        return len(self.missing_workflows)

    def to_dict(self) -> dict[str, Any]:
        return {
            "completedRuns": self.completed_runs,
            "inProgressRuns": self.in_progress_runs,
            "passedRuns": self.passed_runs,
            "failedRuns": self.failed_runs,
            "totalRuntime": self.total_runtime_seconds,
            "didntRunCount": self.didnt_run_count,
            "totalWorkflows": self.total_workflows,
            "missingWorkflows": list(self.missing_workflows),
        }


@dataclass
class WindowHealthSummary:
    """
    A repository's classification over one N-day window.

    Attributes:
        window_start: First day of the window
        window_end: Last day of the window
        transitions: Day-over-day transitions summed over every workflow
        pass_count: Passed buckets across all workflows
        fail_count: Failed buckets across all workflows
        daily_avg_runtime: Average completed-run runtime (seconds) per day with runs
        records: Per-workflow HealthRecord keyed by workflow id
        buckets: The underlying DailyBuckets, ascending by day, for drill-down
    """

    window_start: date
    window_end: date
    transitions: TransitionCounts = field(default_factory=TransitionCounts)
    pass_count: int = 0
    fail_count: int = 0
    daily_avg_runtime: list[int] = field(default_factory=list)
    records: dict[int, HealthRecord] = field(default_factory=dict)
    buckets: list[DailyBucket] = field(default_factory=list)

    @property
    def window_days(self) -> int:
        return (self.window_end - self.window_start).days + 1

    def groups(self) -> dict[HealthStatus, list[HealthRecord]]:
        """Records grouped by trend status, each group sorted by workflow file."""
        grouped: dict[HealthStatus, list[HealthRecord]] = {status: [] for status in TREND_STATUSES}
        for record in self.records.values():
            if record.status in grouped:
                grouped[record.status].append(record)
        for records in grouped.values():
            records.sort(key=lambda r: (r.sort_key, r.workflow_id))
        return grouped

    def to_dict(self) -> dict[str, Any]:
        return {
            "windowStart": self.window_start.isoformat(),
            "windowEnd": self.window_end.isoformat(),
            "windowDays": self.window_days,
            "transitions": self.transitions.to_dict(),
            "passCount": self.pass_count,
            "failCount": self.fail_count,
            "dailyAvgRuntime": list(self.daily_avg_runtime),
            "records": {str(k): v.to_dict() for k, v in sorted(self.records.items())},
            "groups": {status.value: [r.workflow_id for r in records] for status, records in self.groups().items()},
            "buckets": [bucket.to_dict() for bucket in self.buckets],
        }
