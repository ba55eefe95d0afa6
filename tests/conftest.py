"""
Pytest configuration and shared fixtures

Provides factories for runs, buckets and workflows used across the test suite.
"""

import itertools
from datetime import UTC, date, datetime, timedelta

import pytest

from omnilens.domain.runs import DailyBucket, Run, RunConclusion, RunStatus
from omnilens.domain.workflows import Workflow, WorkflowState

BASE_DAY = date(2026, 3, 1)


def at(day: date, hour: int = 12, minute: int = 0) -> datetime:
    """UTC timestamp on a given day"""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC)


# ===== Run Fixtures =====


@pytest.fixture
def make_run():
    """Factory for Run objects with sensible defaults"""
    ids = itertools.count(1000)

    def _make(
        workflow_id: int = 1,
        started_at: datetime | None = None,
        conclusion: str | None = "success",
        status: str | None = None,
        duration_minutes: int = 10,
        run_id: int | None = None,
        path: str = ".github/workflows/build.yml",
        name: str = "Build",
    ) -> Run:
        started = started_at or at(BASE_DAY)
        run_status = RunStatus(status) if status else (RunStatus.COMPLETED if conclusion else RunStatus.IN_PROGRESS)
        return Run(
            id=run_id if run_id is not None else next(ids),
            workflow_id=workflow_id,
            started_at=started,
            updated_at=started + timedelta(minutes=duration_minutes),
            status=run_status,
            conclusion=RunConclusion(conclusion) if conclusion else None,
            name=name,
            path=path,
            html_url=f"https://github.com/octo/repo/actions/runs/{run_id or 0}",
        )

    return _make


@pytest.fixture
def make_bucket(make_run):
    """
    Factory for a single-run DailyBucket.

    outcome: "passed", "failed" or "running"
    """

    def _make(day: date, outcome: str, workflow_id: int = 1, path: str = ".github/workflows/build.yml") -> DailyBucket:
        conclusion = {"passed": "success", "failed": "failure", "running": None}[outcome]
        run = make_run(workflow_id=workflow_id, started_at=at(day), conclusion=conclusion, path=path)
        return DailyBucket(day=day, workflow_id=workflow_id, latest=run)

    return _make


@pytest.fixture
def make_history(make_bucket):
    """Build a history from a list of outcomes on consecutive days starting at BASE_DAY"""

    def _make(outcomes: list[str | None], workflow_id: int = 1, start: date = BASE_DAY) -> list[DailyBucket]:
        history = []
        for offset, outcome in enumerate(outcomes):
            if outcome is None:
                continue
            history.append(make_bucket(start + timedelta(days=offset), outcome, workflow_id))
        return history

    return _make


# ===== Workflow Fixtures =====


@pytest.fixture
def make_workflow():
    """Factory for Workflow objects"""

    def _make(
        workflow_id: int,
        filename: str,
        config_text: str | None = "",
        name: str | None = None,
        state: WorkflowState = WorkflowState.ACTIVE,
    ) -> Workflow:
        return Workflow(
            id=workflow_id,
            name=name if name is not None else filename.rsplit(".", 1)[0].title(),
            path=f".github/workflows/{filename}",
            state=state,
            config_text=config_text,
        )

    return _make


BUILD_YAML = """
name: Build
on:
  push:
    branches: [main]
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - run: make
"""

INTEGRATION_YAML = """
name: Integration Tests
on:
  workflow_run:
    workflows: ["Build"]
    types: [completed]
jobs:
  test:
    runs-on: ubuntu-latest
    steps:
      - run: make test
"""

NIGHTLY_YAML = """
name: Nightly
on:
  schedule:
    - cron: "0 2 * * *"
jobs:
  e2e:
    uses: ./.github/workflows/e2e.yml
  smoke:
    uses: ./.github/workflows/smoke.yml
    secrets: inherit
  external:
    uses: octo/shared/.github/workflows/lint.yml@main
"""

E2E_YAML = """
name: E2E
on:
  workflow_call:
    inputs:
      env:
        type: string
jobs:
  run:
    runs-on: ubuntu-latest
    steps:
      - run: make e2e
"""


@pytest.fixture
def sample_workflows(make_workflow):
    """A small repository: build, a workflow_run dependent, a caller and a reusable callee"""
    return [
        make_workflow(1, "build.yml", BUILD_YAML, name="Build"),
        make_workflow(2, "integration.yml", INTEGRATION_YAML, name="Integration Tests"),
        make_workflow(3, "nightly.yml", NIGHTLY_YAML, name="Nightly"),
        make_workflow(4, "e2e.yml", E2E_YAML, name="E2E"),
    ]
