"""
Run domain models - workflow executions and their per-day normalization

Represents:
    - Run: one execution snapshot of a workflow, as reported by the CI provider
    - SubRun: the drill-down view of a run kept inside a DailyBucket
    - DailyBucket: all runs of one workflow on one calendar day, with the
      most recently started run as the day's "current" state
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class RunStatus(str, Enum):
    """Lifecycle state of a run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self is RunStatus.COMPLETED


class RunConclusion(str, Enum):
    """Outcome of a completed run. Anything but SUCCESS counts as a failure."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"
    NEUTRAL = "neutral"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"
    STARTUP_FAILURE = "startup_failure"


@dataclass(frozen=True)
class Run:
    """
    One execution instance of a workflow.

    Attributes:
        id: Provider execution identifier (unique within the provider)
        workflow_id: Identifier of the workflow this run belongs to
        started_at: When the run started (timezone-aware)
        updated_at: Last time the provider updated the run
        status: queued / in_progress / completed
        conclusion: Outcome, set only once status is completed
        name: Workflow display name reported with the run
        path: Workflow file path reported with the run
        html_url: Link to the run in the provider UI

    Raises:
        ValueError: If conclusion is set while the run is still incomplete,
            or missing while the run is completed

    Example:
        run = Run(
            id=9001,
            workflow_id=42,
            started_at=datetime(2026, 3, 2, 9, 0, tzinfo=UTC),
            updated_at=datetime(2026, 3, 2, 9, 12, tzinfo=UTC),
            status=RunStatus.COMPLETED,
            conclusion=RunConclusion.SUCCESS,
        )
    """

    id: int
    workflow_id: int
    started_at: datetime
    updated_at: datetime
    status: RunStatus
    conclusion: RunConclusion | None = None
    name: str = ""
    path: str = ""
    html_url: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.started_at, datetime):
            raise TypeError(f"started_at must be datetime, got {type(self.started_at)}")
        if not isinstance(self.updated_at, datetime):
            raise TypeError(f"updated_at must be datetime, got {type(self.updated_at)}")

        completed = self.status.is_terminal
        if completed and self.conclusion is None:
            raise ValueError(f"Run {self.id} is completed but has no conclusion")
        if not completed and self.conclusion is not None:
            raise ValueError(f"Run {self.id} is {self.status.value} but already has conclusion {self.conclusion.value}")

    @property
    def is_completed(self) -> bool:
        return self.status.is_terminal

    @property
    def succeeded(self) -> bool:
        return self.conclusion is RunConclusion.SUCCESS

    @property
    def duration_seconds(self) -> int | None:
        """
        Approximate runtime (updated_at - started_at) for completed runs.

        Returns:
            Whole seconds, never negative, or None while the run is incomplete
        """
        if not self.is_completed:
            return None
        return max(0, int((self.updated_at - self.started_at).total_seconds()))

    def to_sub_run(self) -> "SubRun":
        return SubRun(
            id=self.id,
            status=self.status,
            conclusion=self.conclusion,
            html_url=self.html_url,
            started_at=self.started_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "name": self.name,
            "path": self.path,
            "status": self.status.value,
            "conclusion": self.conclusion.value if self.conclusion else None,
            "html_url": self.html_url,
            "run_started_at": self.started_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class SubRun:
    """Drill-down view of one run inside a DailyBucket."""

    id: int
    status: RunStatus
    conclusion: RunConclusion | None
    html_url: str
    started_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "conclusion": self.conclusion.value if self.conclusion else None,
            "html_url": self.html_url,
            "run_started_at": self.started_at.isoformat(),
        }


@dataclass
class DailyBucket:
    """
    Normalized state of one workflow for one calendar day.

    Attributes:
        day: Calendar day (in the configured timezone)
        workflow_id: Workflow the bucket belongs to
        latest: Most recently started run of the day (the day's visible state)
        count: How many runs started that day
        runs: Every run of the day, most recent first (latest included)
    """

    day: date
    workflow_id: int
    latest: Run
    count: int = 1
    runs: list[SubRun] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.latest.workflow_id != self.workflow_id:
            raise ValueError(
                f"Bucket for workflow {self.workflow_id} cannot hold run of workflow {self.latest.workflow_id}"
            )
        if not self.runs:
            self.runs = [self.latest.to_sub_run()]

    @property
    def had_duplicates(self) -> bool:
        return self.count > 1

    def add(self, run: Run) -> None:
        """Record an earlier-started run of the same workflow and day."""
        self.count += 1
        self.runs.append(run.to_sub_run())

    def to_dict(self) -> dict[str, Any]:
        data = self.latest.to_dict()
        data.update(
            {
                "day": self.day.isoformat(),
                "run_count": self.count,
                "all_runs": [sub_run.to_dict() for sub_run in self.runs],
            }
        )
        return data
