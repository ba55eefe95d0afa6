"""
Run and workflow sources

The aggregator talks to the CI provider only through two collaborator
interfaces:

    RunSource.fetch_runs(repository, start, end)  -> list[Run]
    WorkflowSource.fetch_workflows(repository)    -> list[Workflow]

Both are async. Implementations must raise ProviderError subclasses for
provider-side failures; an empty list always means "no data", never "failed".
Retry and backoff, when wanted, belong to the implementation.

SnapshotSource reads both from JSON snapshot files on disk:

    {snapshot_dir}/{owner}__{name}/runs.json        # {"workflow_runs": [...]} or [...]
    {snapshot_dir}/{owner}__{name}/workflows.json   # {"workflows": [...]} or [...]
    {snapshot_dir}/{owner}__{name}/workflow_files/<basename>   # optional config text
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from omnilens.collectors.errors import NotFoundError, ProviderUnavailableError
from omnilens.collectors.github_transformers import runs_from_api, workflow_from_api
from omnilens.core import get_logger
from omnilens.domain.runs import Run
from omnilens.domain.workflows import Workflow
from omnilens.utils.datetime_utils import ensure_aware
from omnilens.utils.error_handling import log_and_continue, log_and_return_default
from omnilens.utils.workflow_names import file_basename

logger = get_logger(__name__)


@runtime_checkable
class RunSource(Protocol):
    """Provides raw runs for a repository and time range."""

    async def fetch_runs(self, repository: str, start: datetime, end: datetime) -> list[Run]:
        """
        Fetch runs that started within [start, end].

        Raises:
            ProviderError: On provider-side failure (rate limit, not found, access denied, outage)
        """
        ...


@runtime_checkable
class WorkflowSource(Protocol):
    """Provides workflow definitions (with configuration text) for a repository."""

    async def fetch_workflows(self, repository: str) -> list[Workflow]:
        """
        Fetch every workflow of a repository.

        Raises:
            ProviderError: On provider-side failure
        """
        ...


class SnapshotSource:
    """
    RunSource and WorkflowSource backed by JSON snapshot files.

    Attributes:
        snapshot_dir: Root directory holding one sub-directory per repository
    """

    def __init__(self, snapshot_dir: Path | str):
        self.snapshot_dir = Path(snapshot_dir)

    def repository_dir(self, repository: str) -> Path:
        return self.snapshot_dir / repository.replace("/", "__")

    def _load(self, repository: str, filename: str, collection_key: str) -> list[dict[str, Any]]:
        repo_dir = self.repository_dir(repository)
        if not repo_dir.is_dir():
            raise NotFoundError(repository, f"No snapshot for repository at {repo_dir}", 404)

        path = repo_dir / filename
        if not path.exists():
            return []

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read snapshot {path}: {e}", extra={"repository": repository, "path": str(path)})
            raise ProviderUnavailableError(repository, f"Unreadable snapshot {filename}: {e}") from e

        records = data.get(collection_key, []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ProviderUnavailableError(repository, f"Snapshot {filename} has no '{collection_key}' list")
        return records

    async def fetch_runs(self, repository: str, start: datetime, end: datetime) -> list[Run]:
        runs = runs_from_api(self._load(repository, "runs.json", "workflow_runs"))
        window_start, window_end = ensure_aware(start), ensure_aware(end)
        selected = [run for run in runs if window_start <= ensure_aware(run.started_at) <= window_end]

        logger.info(
            f"Loaded {len(selected)} runs for {repository}",
            extra={"repository": repository, "run_count": len(selected), "snapshot_run_count": len(runs)},
        )
        return selected

    def _config_text(self, repository: str, raw: dict[str, Any]) -> str | None:
        if raw.get("config_text") is not None:
            return raw["config_text"]
        config_file = self.repository_dir(repository) / "workflow_files" / file_basename(raw.get("path") or "")
        if not config_file.is_file():
            return None
        try:
            return config_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return log_and_return_default(
                logger, e, {"repository": repository, "path": str(config_file)}, None, "Workflow file reading"
            )

    async def fetch_workflows(self, repository: str) -> list[Workflow]:
        workflows = []
        for raw in self._load(repository, "workflows.json", "workflows"):
            try:
                workflows.append(workflow_from_api(raw, self._config_text(repository, raw)))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                log_and_continue(logger, e, {"repository": repository, "workflow": raw}, "Workflow loading")
        return workflows
