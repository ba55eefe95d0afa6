"""
FastAPI Application - Workflow Health REST API

Thin HTTP surface over the windowed aggregator: trigger map, today-vs-yesterday
health, N-day window health and per-day runs for each tracked repository.

Usage:
    # Development
    uvicorn omnilens.api.app:app --reload --port 8000

API Documentation:
    http://localhost:8000/docs (Swagger UI)
    http://localhost:8000/redoc (ReDoc)
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Query, status

from omnilens import __version__
from omnilens.api.middleware import CacheControlMiddleware, RequestIDMiddleware
from omnilens.collectors.errors import (
    AccessDeniedError,
    NotFoundError,
    ProviderError,
    RateLimitedError,
)
from omnilens.collectors.repository_store import RepositoryStore
from omnilens.collectors.sources import SnapshotSource
from omnilens.core import get_config, get_logger, validate_config_on_startup
from omnilens.domain.repositories import TrackedRepository
from omnilens.domain.workflows import Workflow
from omnilens.health.aggregator import WindowedAggregator
from omnilens.utils.datetime_utils import WindowError, coerce_day

logger = get_logger(__name__)

_PROVIDER_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AccessDeniedError, status.HTTP_403_FORBIDDEN),
    (RateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
)


def provider_error_to_http(error: ProviderError) -> HTTPException:
    """Map a ProviderError to the HTTP error returned to API clients."""
    status_code = status.HTTP_502_BAD_GATEWAY
    for error_class, mapped in _PROVIDER_STATUS:
        if isinstance(error, error_class):
            status_code = mapped
            break
    return HTTPException(status_code=status_code, detail=error.to_dict())


def create_app(aggregator: WindowedAggregator | None = None, store: RepositoryStore | None = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        aggregator: Aggregator to serve from; defaults to snapshot-backed sources
            configured via OMNILENS_SNAPSHOT_DIR
        store: Tracked repository registry; defaults to OMNILENS_DB_PATH, opened
            on first use so importing this module touches no files
    """
    config = get_config()
    if aggregator is None or store is None:
        validate_config_on_startup(["health", "storage"])
    if aggregator is None:
        source = SnapshotSource(config.get_snapshot_dir())
        aggregator = WindowedAggregator(source, source, config=config.get_health_config())
    app = FastAPI(
        title="Omnilens Workflow Health API",
        description="CI workflow trigger graphs and day-over-day / N-day health classification",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.aggregator = aggregator
    app.state.store = store

    # Add middleware (order matters - last added is executed first)
    app.add_middleware(CacheControlMiddleware, max_age_seconds=int(aggregator.cache.ttl_seconds))
    app.add_middleware(RequestIDMiddleware)

    def get_store() -> RepositoryStore:
        if app.state.store is None:
            app.state.store = RepositoryStore(config.get_storage_config().database_path)
        return app.state.store

    def resolve_repository(slug: str) -> TrackedRepository:
        repository = get_store().get(slug)
        if repository is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Repository '{slug}' is not tracked")
        return repository

    def saved_workflows(slug: str) -> list[Workflow] | None:
        # Fall back to the provider's workflow list until workflows have been saved
        return get_store().list_workflows(slug, active_only=True) or None

    # ============================================================
    # Health Check
    # ============================================================

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint for monitoring.

        Returns:
            Status of the API, tracked repository count and cache size
        """
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": __version__,
            "tracked_repositories": len(get_store().list_all()),
            "cache_entries": len(aggregator.cache),
        }

    # ============================================================
    # Repositories
    # ============================================================

    @app.get("/api/v1/repositories", tags=["Repositories"])
    async def list_repositories():
        """List tracked repositories."""
        repositories = [repository.to_dict() for repository in get_store().list_all()]
        return {"repositories": repositories, "count": len(repositories)}

    @app.get("/api/v1/repositories/{slug}/trigger-map", tags=["Trigger Map"])
    async def get_trigger_map(slug: str) -> dict[str, Any]:
        """
        Trigger graph of a repository's workflows.

        Returns:
            nameToTesting, fileToTesting, testingToTrigger, per-workflow metadata
            and parse errors
        """
        repository = resolve_repository(slug)
        try:
            graph = await aggregator.trigger_graph(repository.repo_path)
        except ProviderError as e:
            raise provider_error_to_http(e)

        logger.info("Trigger map accessed", extra={"slug": slug, "edge_count": graph.edge_count})
        return graph.to_dict()

    # ============================================================
    # Health Endpoints
    # ============================================================

    @app.get("/api/v1/repositories/{slug}/health-metrics", tags=["Health Metrics"])
    async def get_health_metrics(slug: str, date: str | None = None) -> dict[str, Any]:
        """
        Today-vs-yesterday status of each active workflow.

        Args:
            date: Day to report on (YYYY-MM-DD, default: today)
        """
        repository = resolve_repository(slug)
        try:
            report = await aggregator.day_over_day(repository.repo_path, date, saved_workflows(slug))
        except WindowError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except ProviderError as e:
            raise provider_error_to_http(e)

        logger.info("Health metrics accessed", extra={"slug": slug, "workflow_count": len(report.records)})
        return report.to_dict()

    @app.get("/api/v1/repositories/{slug}/window-health", tags=["Health Metrics"])
    async def get_window_health(
        slug: str,
        days: int | None = Query(None, ge=1, le=365),
        end: str | None = None,
    ) -> dict[str, Any]:
        """
        N-day health classification (e.g. the 30 and 90 day cards).

        Args:
            days: Window length (1-365, default: configured default window)
            end: Last day of the window (YYYY-MM-DD, default: today)
        """
        repository = resolve_repository(slug)
        try:
            summary = await aggregator.window_health(repository.repo_path, days, end, saved_workflows(slug))
        except WindowError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except ProviderError as e:
            raise provider_error_to_http(e)

        logger.info(
            "Window health accessed",
            extra={"slug": slug, "window_days": summary.window_days, "workflow_count": len(summary.records)},
        )
        return summary.to_dict()

    @app.get("/api/v1/repositories/{slug}/runs", tags=["Runs"])
    async def get_runs(slug: str, date: str | None = None) -> dict[str, Any]:
        """
        Normalized runs (one per workflow) and overview metrics for a day.

        Args:
            date: Day to report on (YYYY-MM-DD, default: today)
        """
        repository = resolve_repository(slug)
        try:
            overview, buckets = await aggregator.overview(repository.repo_path, date, saved_workflows(slug))
        except WindowError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except ProviderError as e:
            raise provider_error_to_http(e)

        return {
            "date": (coerce_day(date, aggregator.tz) if date else aggregator.today()).isoformat(),
            "overview": overview.to_dict(),
            "workflowRuns": [bucket.to_dict() for bucket in buckets],
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Omnilens API on http://localhost:8000 (docs at /docs)")
    uvicorn.run("omnilens.api.app:app", host="127.0.0.1", port=8000, reload=True, log_level="info")
