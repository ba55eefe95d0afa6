#!/usr/bin/env python3
"""
Tests for the JSON snapshot source
"""

import json
from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from omnilens.collectors.errors import NotFoundError, ProviderUnavailableError
from omnilens.collectors.sources import RunSource, SnapshotSource, WorkflowSource

START = datetime(2026, 3, 2, 0, 0, tzinfo=UTC)
END = datetime(2026, 3, 2, 23, 59, 59, tzinfo=UTC)


def raw_run(run_id: int, started: str, conclusion: str = "success") -> dict:
    return {
        "id": run_id,
        "workflow_id": 1,
        "name": "Build",
        "path": ".github/workflows/build.yml",
        "status": "completed",
        "conclusion": conclusion,
        "run_started_at": started,
        "updated_at": started,
    }


@pytest.fixture
def snapshot_dir(tmp_path):
    repo_dir = tmp_path / "octo__repo"
    (repo_dir / "workflow_files").mkdir(parents=True)
    (repo_dir / "runs.json").write_text(
        json.dumps(
            {
                "workflow_runs": [
                    raw_run(1, "2026-03-01T23:00:00Z"),
                    raw_run(2, "2026-03-02T09:00:00Z"),
                    raw_run(3, "2026-03-02T18:00:00Z", "failure"),
                    {"id": 4, "status": "completed"},
                ]
            }
        ),
        encoding="utf-8",
    )
    (repo_dir / "workflows.json").write_text(
        json.dumps(
            [
                {"id": 1, "name": "Build", "path": ".github/workflows/build.yml", "state": "active"},
                {"id": 2, "name": "Inline", "path": ".github/workflows/inline.yml", "config_text": "name: Inline\n"},
                {"id": 3, "name": "No File", "path": ".github/workflows/none.yml"},
                {"name": "missing id"},
            ]
        ),
        encoding="utf-8",
    )
    (repo_dir / "workflow_files" / "build.yml").write_text("name: Build\non: push\n", encoding="utf-8")
    return tmp_path


class TestSnapshotSource:
    """Tests for SnapshotSource"""

    def test_implements_both_source_protocols(self, snapshot_dir):
        source = SnapshotSource(snapshot_dir)

        assert isinstance(source, RunSource)
        assert isinstance(source, WorkflowSource)

    @pytest.mark.asyncio
    async def test_fetch_runs_filters_to_window(self, snapshot_dir):
        runs = await SnapshotSource(snapshot_dir).fetch_runs("octo/repo", START, END)

        assert [run.id for run in runs] == [2, 3]

    @pytest.mark.asyncio
    async def test_fetch_workflows_attaches_config_text(self, snapshot_dir):
        workflows = await SnapshotSource(snapshot_dir).fetch_workflows("octo/repo")
        by_id = {w.id: w for w in workflows}

        assert sorted(by_id) == [1, 2, 3]
        assert by_id[1].config_text == "name: Build\non: push\n"
        assert by_id[2].config_text == "name: Inline\n"
        assert by_id[3].config_text is None

    @pytest.mark.asyncio
    async def test_unknown_repository_is_not_found(self, snapshot_dir):
        with pytest.raises(NotFoundError) as exc_info:
            await SnapshotSource(snapshot_dir).fetch_runs("octo/missing", START, END)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_file_means_no_data(self, snapshot_dir):
        (snapshot_dir / "octo__repo" / "runs.json").unlink()

        assert await SnapshotSource(snapshot_dir).fetch_runs("octo/repo", START, END) == []

    @pytest.mark.asyncio
    async def test_corrupt_snapshot_is_unavailable(self, snapshot_dir):
        (snapshot_dir / "octo__repo" / "runs.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(ProviderUnavailableError):
            await SnapshotSource(snapshot_dir).fetch_runs("octo/repo", START, END)

    @pytest.mark.asyncio
    async def test_wrong_collection_shape_is_unavailable(self, snapshot_dir):
        (snapshot_dir / "octo__repo" / "workflows.json").write_text('{"workflows": {"id": 1}}', encoding="utf-8")

        with pytest.raises(ProviderUnavailableError):
            await SnapshotSource(snapshot_dir).fetch_workflows("octo/repo")

    @pytest.mark.asyncio
    async def test_unreadable_workflow_file_yields_no_text(self, snapshot_dir):
        """Binary garbage in a workflow file is logged and treated as missing text"""
        (snapshot_dir / "octo__repo" / "workflow_files" / "build.yml").write_bytes(b"\xff\xfe\x00bad")

        with patch("omnilens.collectors.sources.logger") as mock_logger:
            workflows = await SnapshotSource(snapshot_dir).fetch_workflows("octo/repo")

        build = next(w for w in workflows if w.id == 1)
        assert build.config_text is None
        assert mock_logger.warning.call_args_list[0][1]["extra"]["error_type"] == "Workflow file reading"

    def test_repository_dir_naming(self, tmp_path):
        assert SnapshotSource(tmp_path).repository_dir("octo/repo") == tmp_path / "octo__repo"
