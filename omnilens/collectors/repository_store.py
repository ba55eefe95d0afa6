"""
Tracked repository registry (SQLite)

Stores the repositories added to the dashboard and the workflows saved for
each of them. Database at .tmp/omnilens/omnilens.db by default
(OMNILENS_DB_PATH).

Usage:
    store = RepositoryStore(get_config().get_storage_config().database_path)
    store.add(TrackedRepository(slug="api", repo_path="octo/api", display_name="API"))
    store.save_workflows("api", workflows)
"""

import sqlite3
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from omnilens.core import get_logger
from omnilens.domain.repositories import TrackedRepository
from omnilens.domain.workflows import Workflow, WorkflowState

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def create_database(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes (idempotent)."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS repositories (
            slug           TEXT PRIMARY KEY,
            repo_path      TEXT NOT NULL,
            display_name   TEXT NOT NULL,
            html_url       TEXT NOT NULL DEFAULT '',
            default_branch TEXT NOT NULL DEFAULT 'main',
            added_at       TEXT NOT NULL,
            updated_at     TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS workflows (
            repository_slug TEXT    NOT NULL REFERENCES repositories (slug) ON DELETE CASCADE,
            workflow_id     INTEGER NOT NULL,
            name            TEXT    NOT NULL,
            path            TEXT    NOT NULL,
            state           TEXT    NOT NULL,
            PRIMARY KEY (repository_slug, workflow_id)
        );

        CREATE INDEX IF NOT EXISTS idx_workflows_state ON workflows (repository_slug, state);
    """)
    conn.commit()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _row_to_repository(row: sqlite3.Row) -> TrackedRepository:
    return TrackedRepository(
        slug=row["slug"],
        repo_path=row["repo_path"],
        display_name=row["display_name"],
        html_url=row["html_url"],
        default_branch=row["default_branch"],
        added_at=datetime.fromisoformat(row["added_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_workflow(row: sqlite3.Row) -> Workflow:
    return Workflow(
        id=row["workflow_id"],
        name=row["name"],
        path=row["path"],
        state=WorkflowState(row["state"]),
    )


class RepositoryStore:
    """
    SQLite-backed registry of tracked repositories and their saved workflows.

    Pass ":memory:" as the database path for a throwaway store.
    """

    def __init__(self, database_path: Path | str):
        self.database_path = str(database_path)
        if self.database_path != ":memory:":
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.database_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        create_database(self._conn)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "RepositoryStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -----------------------------------------------------------------------
    # Repositories
    # -----------------------------------------------------------------------

    def add(self, repository: TrackedRepository) -> TrackedRepository:
        """
        Add a repository, or update its details if the slug already exists.

        Returns:
            The stored repository (with timestamps)
        """
        now = _now()
        with self._conn:
            self._conn.execute(
                "INSERT INTO repositories (slug, repo_path, display_name, html_url, default_branch, added_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (slug) DO UPDATE SET repo_path = excluded.repo_path, display_name = excluded.display_name, "
                "html_url = excluded.html_url, default_branch = excluded.default_branch, updated_at = excluded.updated_at",
                (
                    repository.slug,
                    repository.repo_path,
                    repository.display_name,
                    repository.html_url,
                    repository.default_branch,
                    now,
                    now,
                ),
            )
        logger.info(f"Tracking repository {repository.repo_path}", extra={"slug": repository.slug})
        stored = self.get(repository.slug)
        if stored is None:
            raise RuntimeError(f"Repository {repository.slug} was not stored")
        return stored

    def get(self, slug: str) -> TrackedRepository | None:
        row = self._conn.execute("SELECT * FROM repositories WHERE slug = ?", (slug,)).fetchone()
        return _row_to_repository(row) if row else None

    def list_all(self) -> list[TrackedRepository]:
        rows = self._conn.execute("SELECT * FROM repositories ORDER BY display_name, slug").fetchall()
        return [_row_to_repository(row) for row in rows]

    def remove(self, slug: str) -> bool:
        """Remove a repository and its saved workflows. Returns False if it was not tracked."""
        with self._conn:
            cursor = self._conn.execute("DELETE FROM repositories WHERE slug = ?", (slug,))
        removed = cursor.rowcount > 0
        if removed:
            logger.info(f"Stopped tracking repository {slug}", extra={"slug": slug})
        return removed

    # -----------------------------------------------------------------------
    # Workflows
    # -----------------------------------------------------------------------

    def save_workflows(self, slug: str, workflows: Iterable[Workflow]) -> int:
        """
        Upsert workflows for a tracked repository.

        Returns:
            Number of workflows written

        Raises:
            KeyError: If the repository is not tracked
        """
        if self.get(slug) is None:
            raise KeyError(f"Repository '{slug}' is not tracked")

        rows = [(slug, w.id, w.name, w.path, w.state.value) for w in workflows]
        with self._conn:
            self._conn.executemany(
                "INSERT INTO workflows (repository_slug, workflow_id, name, path, state) VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT (repository_slug, workflow_id) DO UPDATE SET "
                "name = excluded.name, path = excluded.path, state = excluded.state",
                rows,
            )
        logger.debug(f"Saved {len(rows)} workflows for {slug}", extra={"slug": slug, "workflow_count": len(rows)})
        return len(rows)

    def list_workflows(self, slug: str, active_only: bool = False) -> list[Workflow]:
        query = "SELECT * FROM workflows WHERE repository_slug = ?"
        params: tuple = (slug,)
        if active_only:
            query += " AND state = ?"
            params = (slug, WorkflowState.ACTIVE.value)
        rows = self._conn.execute(query + " ORDER BY path, workflow_id", params).fetchall()
        return [_row_to_workflow(row) for row in rows]
