"""
GitHub Actions Response Transformers

Converts raw workflow-run and workflow JSON records (as returned by the
GitHub Actions REST API and stored in snapshots) into domain models.

Usage:
    from omnilens.collectors.github_transformers import runs_from_api

    # REST API returns:
    payload = {"total_count": 2, "workflow_runs": [{"id": 1, "workflow_id": 42, ...}]}

    runs = runs_from_api(payload["workflow_runs"])
"""

from collections.abc import Iterable
from typing import Any

from omnilens.core import get_logger
from omnilens.domain.runs import Run, RunConclusion, RunStatus
from omnilens.domain.workflows import Workflow, WorkflowState
from omnilens.utils.datetime_utils import parse_provider_timestamp
from omnilens.utils.error_handling import log_and_continue

logger = get_logger(__name__)

# Provider states that have not started executing yet
_PENDING_STATUSES = {"queued", "waiting", "pending", "requested"}


def _status_from_api(value: Any) -> RunStatus:
    status = str(value or "").strip().lower()
    if status in _PENDING_STATUSES:
        return RunStatus.QUEUED
    return RunStatus(status)


def run_from_api(raw: dict[str, Any]) -> Run:
    """
    Transform one workflow run record to a Run.

    REST Record:
    {
        "id": 30433642,
        "workflow_id": 159038,
        "name": "Build",
        "path": ".github/workflows/build.yml",
        "status": "completed",
        "conclusion": "success",
        "run_started_at": "2026-03-02T09:00:00Z",
        "updated_at": "2026-03-02T09:12:00Z",
        "html_url": "https://github.com/octo/repo/actions/runs/30433642"
    }

    Args:
        raw: Run record

    Returns:
        Run domain object

    Raises:
        KeyError: If id or workflow_id is missing
        ValueError: If timestamps, status or conclusion are invalid
    """
    started_at = parse_provider_timestamp(raw.get("run_started_at") or raw.get("created_at"))
    updated_at = parse_provider_timestamp(raw.get("updated_at")) or started_at
    if started_at is None or updated_at is None:
        raise ValueError(f"Run {raw.get('id')} has no start timestamp")

    status = _status_from_api(raw.get("status"))
    conclusion_value = raw.get("conclusion")
    conclusion = RunConclusion(conclusion_value) if conclusion_value else None

    return Run(
        id=int(raw["id"]),
        workflow_id=int(raw["workflow_id"]),
        started_at=started_at,
        updated_at=updated_at,
        status=status,
        conclusion=conclusion,
        name=raw.get("name") or "",
        path=raw.get("path") or "",
        html_url=raw.get("html_url") or "",
    )


def runs_from_api(records: Iterable[dict[str, Any]]) -> list[Run]:
    """
    Transform run records, skipping (and logging) records that fail to parse.

    Returns:
        Runs in input order, malformed records omitted
    """
    runs = []
    for raw in records:
        try:
            runs.append(run_from_api(raw))
        except (KeyError, TypeError, ValueError) as e:
            log_and_continue(logger, e, {"run_id": raw.get("id") if isinstance(raw, dict) else None}, "Run parsing")
    return runs


def workflow_from_api(raw: dict[str, Any], config_text: str | None = None) -> Workflow:
    """
    Transform one workflow record to a Workflow.

    REST Record:
    {"id": 159038, "name": "Build", "path": ".github/workflows/build.yml", "state": "active"}

    Args:
        raw: Workflow record
        config_text: Raw configuration text; falls back to raw["config_text"]

    Returns:
        Workflow domain object

    Raises:
        KeyError: If id is missing
        ValueError: If state is unknown
    """
    if config_text is None:
        config_text = raw.get("config_text")
    return Workflow(
        id=int(raw["id"]),
        name=raw.get("name") or "",
        path=raw.get("path") or "",
        state=WorkflowState(raw.get("state") or WorkflowState.ACTIVE.value),
        config_text=config_text,
    )


def workflows_from_api(records: Iterable[dict[str, Any]]) -> list[Workflow]:
    """Transform workflow records, skipping (and logging) malformed ones."""
    workflows = []
    for raw in records:
        try:
            workflows.append(workflow_from_api(raw))
        except (KeyError, TypeError, ValueError) as e:
            log_and_continue(
                logger, e, {"workflow_id": raw.get("id") if isinstance(raw, dict) else None}, "Workflow parsing"
            )
    return workflows
