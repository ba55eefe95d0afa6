"""
Tracked repository domain model
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TrackedRepository:
    """
    A repository added to the dashboard.

    Attributes:
        slug: Dashboard identifier (unique)
        repo_path: Provider path in "owner/name" form
        display_name: Name shown in the dashboard
        html_url: Link to the repository
        default_branch: Branch whose runs are monitored
        added_at: When the repository was added
        updated_at: Last modification time
    """

    slug: str
    repo_path: str
    display_name: str
    html_url: str = ""
    default_branch: str = "main"
    added_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.slug:
            raise ValueError("slug is required")
        owner, _, name = self.repo_path.partition("/")
        if not owner or not name or "/" in name:
            raise ValueError(f"repo_path must be 'owner/name', got {self.repo_path!r}")

    @property
    def owner(self) -> str:
        return self.repo_path.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.repo_path.split("/", 1)[1]

    def to_dict(self) -> dict[str, str | None]:
        return {
            "slug": self.slug,
            "repoPath": self.repo_path,
            "displayName": self.display_name,
            "htmlUrl": self.html_url,
            "defaultBranch": self.default_branch,
            "addedAt": self.added_at.isoformat() if self.added_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
