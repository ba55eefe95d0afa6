"""
Domain Models - Type-safe data structures for workflow health

This package contains dataclasses representing business domain concepts:
    - runs: Run, SubRun, DailyBucket
    - workflows: Workflow, WorkflowConfig, ParseResult, TriggerGraph
    - health: HealthStatus, HealthRecord, TransitionCounts, OverviewMetrics
    - repositories: TrackedRepository

Usage:
    from omnilens.domain.runs import Run, RunStatus
    from omnilens.domain.health import HealthStatus

    if record.status is HealthStatus.STILL_FAILING:
        print(f"Workflow {record.workflow_id} has not passed in {record.window_days} days")
"""

from .health import (
    DayOverDayRecord,
    DayOverDayReport,
    DayTotals,
    HealthRecord,
    HealthStatus,
    OverviewMetrics,
    RunOutcome,
    TransitionCounts,
    WindowHealthSummary,
)
from .repositories import TrackedRepository
from .runs import DailyBucket, Run, RunConclusion, RunStatus, SubRun
from .workflows import (
    ParseResult,
    TriggerGraph,
    Workflow,
    WorkflowConfig,
    WorkflowConfigParseError,
    WorkflowMeta,
    WorkflowState,
)

__all__ = [
    # Runs
    "Run",
    "RunStatus",
    "RunConclusion",
    "SubRun",
    "DailyBucket",
    # Workflows
    "Workflow",
    "WorkflowState",
    "WorkflowConfig",
    "WorkflowConfigParseError",
    "ParseResult",
    "WorkflowMeta",
    "TriggerGraph",
    # Health
    "RunOutcome",
    "HealthStatus",
    "TransitionCounts",
    "HealthRecord",
    "DayTotals",
    "DayOverDayRecord",
    "DayOverDayReport",
    "OverviewMetrics",
    "WindowHealthSummary",
    # Repositories
    "TrackedRepository",
]
