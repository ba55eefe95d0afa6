"""
Collectors - Run and workflow data from the CI provider

This package contains the collaborator side of the system:
    - sources: RunSource / WorkflowSource interfaces and the JSON snapshot source
    - errors: typed provider failures (rate limited, not found, access denied, unavailable)
    - github_transformers: raw GitHub Actions records -> domain models
    - repository_store: SQLite registry of tracked repositories and saved workflows
"""

from .errors import (
    AccessDeniedError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
    RateLimitedError,
    provider_error_from_response,
)
from .repository_store import RepositoryStore
from .sources import RunSource, SnapshotSource, WorkflowSource

__all__ = [
    "ProviderError",
    "RateLimitedError",
    "NotFoundError",
    "AccessDeniedError",
    "ProviderUnavailableError",
    "provider_error_from_response",
    "RunSource",
    "WorkflowSource",
    "SnapshotSource",
    "RepositoryStore",
]
