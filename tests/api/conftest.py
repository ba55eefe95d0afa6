"""
API Test Configuration

Provides an app wired to in-memory sources, an in-memory repository store
and a fixed clock, so endpoint tests never touch the network or disk.
"""

from datetime import UTC, date, datetime

import pytest
from fastapi.testclient import TestClient

from omnilens.api.app import create_app
from omnilens.collectors.repository_store import RepositoryStore
from omnilens.core import HealthConfig
from omnilens.domain.repositories import TrackedRepository
from omnilens.health.aggregator import WindowedAggregator

API_TODAY = date(2026, 3, 5)
API_YESTERDAY = date(2026, 3, 4)


class InMemorySource:
    """RunSource and WorkflowSource serving fixed lists, or raising a set error"""

    def __init__(self, runs, workflows):
        self.runs = runs
        self.workflows = workflows
        self.error = None
        self.run_calls = 0

    async def fetch_runs(self, repository, start, end):
        self.run_calls += 1
        if self.error:
            raise self.error
        return [run for run in self.runs if start <= run.started_at <= end]

    async def fetch_workflows(self, repository):
        if self.error:
            raise self.error
        return list(self.workflows)


@pytest.fixture
def api_source(make_run, sample_workflows):
    def at(day, hour):
        return datetime(day.year, day.month, day.day, hour, tzinfo=UTC)

    runs = [
        make_run(workflow_id=1, started_at=at(API_YESTERDAY, 9), conclusion="failure"),
        make_run(workflow_id=1, started_at=at(API_TODAY, 9), conclusion="success"),
        make_run(
            workflow_id=2,
            started_at=at(API_TODAY, 10),
            conclusion="failure",
            path=".github/workflows/integration.yml",
            name="Integration Tests",
        ),
    ]
    return InMemorySource(runs, sample_workflows)


@pytest.fixture
def api_store():
    store = RepositoryStore(":memory:")
    store.add(TrackedRepository(slug="api", repo_path="octo/api", display_name="API"))
    yield store
    store.close()


@pytest.fixture
def api_aggregator(api_source):
    return WindowedAggregator(
        api_source,
        api_source,
        config=HealthConfig(cache_ttl_seconds=120),
        now=lambda: datetime(2026, 3, 5, 18, 0, tzinfo=UTC),
    )


@pytest.fixture
def client(api_aggregator, api_store):
    """Create FastAPI test client."""
    return TestClient(create_app(aggregator=api_aggregator, store=api_store))
