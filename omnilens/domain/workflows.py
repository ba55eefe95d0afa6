"""
Workflow domain models - definitions, parsed configuration and the trigger graph

Represents:
    - Workflow: a CI automation definition plus its raw configuration text
    - WorkflowConfig: the trigger/job fields extracted from that text
    - ParseResult: success-or-error outcome of parsing one workflow's configuration
    - WorkflowMeta: per-workflow flags exposed alongside the graph
    - TriggerGraph: trigger -> dependent edges keyed by workflow name and by file
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from omnilens.utils.workflow_names import (
    clean_workflow_name,
    display_name_from_path,
    file_basename,
    file_stem,
    normalize_name,
    strip_yaml_suffix,
)


class WorkflowState(str, Enum):
    """Provider-reported state of a workflow definition."""

    ACTIVE = "active"
    DELETED = "deleted"
    DISABLED_MANUALLY = "disabled_manually"
    DISABLED_INACTIVITY = "disabled_inactivity"


@dataclass(frozen=True)
class Workflow:
    """
    A named workflow definition identified by a numeric id and a file path.

    Attributes:
        id: Stable provider identifier
        name: Display name
        path: File path inside the repository (e.g. ".github/workflows/build.yml")
        state: active / deleted / disabled
        config_text: Raw configuration text, used only by the graph builder
    """

    id: int
    name: str
    path: str
    state: WorkflowState = WorkflowState.ACTIVE
    config_text: str | None = None

    @property
    def basename(self) -> str:
        return file_basename(self.path)

    @property
    def is_active(self) -> bool:
        return self.state is WorkflowState.ACTIVE


class WorkflowConfigParseError(Exception):
    """
    Structured parse failure for one workflow's configuration.

    Returned inside a ParseResult rather than raised out of the graph builder,
    so one broken file never aborts a batch.
    """

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}


@dataclass(frozen=True)
class WorkflowConfig:
    """
    Trigger and job fields declared by one workflow's configuration.

    Attributes:
        name: Declared workflow name, if any
        is_reusable: Declares itself callable by other workflows
        upstream_names: Workflows it runs after (as written, not normalized)
        called_local_files: Basenames of same-repository workflow files its jobs call
    """

    name: str | None = None
    is_reusable: bool = False
    upstream_names: tuple[str, ...] = ()
    called_local_files: tuple[str, ...] = ()


@dataclass(frozen=True)
class ParseResult:
    """Either a parsed WorkflowConfig or the error explaining why there is none."""

    workflow: Workflow
    config: WorkflowConfig | None = None
    error: WorkflowConfigParseError | None = None

    def __post_init__(self) -> None:
        if (self.config is None) == (self.error is None):
            raise ValueError("ParseResult needs exactly one of config or error")

    @property
    def ok(self) -> bool:
        return self.config is not None

    @classmethod
    def success(cls, workflow: Workflow, config: WorkflowConfig) -> "ParseResult":
        return cls(workflow=workflow, config=config)

    @classmethod
    def failure(cls, workflow: Workflow, message: str) -> "ParseResult":
        return cls(workflow=workflow, error=WorkflowConfigParseError(workflow.path, message))


@dataclass(frozen=True)
class WorkflowMeta:
    """
    Graph-side description of one workflow.

    Attributes:
        path: Workflow file path
        name: Declared name, or a name derived from the file
        is_testing: Declares one or more upstream workflows
        is_trigger: Calls at least one local reusable workflow
        is_reusable: Can be called by other workflows
    """

    path: str
    name: str
    is_testing: bool = False
    is_trigger: bool = False
    is_reusable: bool = False

    @property
    def basename(self) -> str:
        return file_basename(self.path)

    @classmethod
    def from_parse(cls, result: ParseResult) -> "WorkflowMeta":
        config = result.config or WorkflowConfig()
        workflow = result.workflow
        return cls(
            path=workflow.path,
            name=config.name or workflow.name or display_name_from_path(workflow.path),
            is_testing=bool(config.upstream_names),
            is_trigger=bool(config.called_local_files),
            is_reusable=config.is_reusable,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "isTesting": self.is_testing,
            "isTrigger": self.is_trigger,
            "isReusable": self.is_reusable,
        }


def _invert(target: dict[str, set[str]], source: dict[str, set[str]]) -> None:
    for trigger_key, dependents in source.items():
        for dependent in dependents:
            target.setdefault(dependent, set()).add(trigger_key)


@dataclass
class TriggerGraph:
    """
    Trigger -> dependent workflow edges.

    Two forward maps are kept apart because edges come from two kinds of
    declaration:

        name_to_testing: normalized upstream name -> dependent file basenames
                         ("run after workflow X completes")
        file_to_testing: caller file basename -> called file basenames
                         ("job uses ./.github/workflows/x.yml")

    testing_to_trigger is the merged inverse of both and is always derived,
    never set by hand. Callers should prefer resolve_dependents() and
    resolve_triggers() over reading the maps directly.
    """

    name_to_testing: dict[str, set[str]] = field(default_factory=dict)
    file_to_testing: dict[str, set[str]] = field(default_factory=dict)
    workflows: list[WorkflowMeta] = field(default_factory=list)
    parse_errors: list[WorkflowConfigParseError] = field(default_factory=list, compare=False)
    testing_to_trigger: dict[str, set[str]] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        self.testing_to_trigger = {}
        _invert(self.testing_to_trigger, self.name_to_testing)
        _invert(self.testing_to_trigger, self.file_to_testing)

    @property
    def edge_count(self) -> int:
        return sum(len(v) for v in self.name_to_testing.values()) + sum(
            len(v) for v in self.file_to_testing.values()
        )

    def _match_meta(self, key: str) -> WorkflowMeta | None:
        cleaned = normalize_name(clean_workflow_name(key))
        for meta in self.workflows:
            names = {normalize_name(meta.name), normalize_name(clean_workflow_name(meta.name))}
            if key in names or (cleaned and cleaned in names):
                return meta
        stem = file_stem(key)
        for meta in self.workflows:
            if stem and file_stem(meta.path) == stem:
                return meta
        return None

    @staticmethod
    def _file_key(mapping: dict[str, set[str]], basename: str) -> str:
        # Map keys are basenames as written; fall back to a same-stem key (.yml vs .yaml)
        if basename in mapping:
            return basename
        stem = strip_yaml_suffix(basename)
        for candidate in mapping:
            if strip_yaml_suffix(candidate) == stem:
                return candidate
        return basename

    def resolve_dependents(self, key: str) -> set[str]:
        """
        File basenames of every workflow that depends on ``key``.

        ``key`` may be a workflow name or a file reference; both the
        name-keyed and file-keyed edges are consulted. File references
        ignore the directory and the .yml/.yaml extension.

        Example:
            >>> graph.resolve_dependents("Build")
            {'deploy.yml', 'integration.yml'}
        """
        normalized = normalize_name(key)
        if not normalized:
            return set()

        dependents = set(self.name_to_testing.get(normalized, set()))

        basename = file_basename(normalized)
        meta = self._match_meta(normalized)
        if meta is not None:
            basename = meta.basename
            dependents |= self.name_to_testing.get(normalize_name(meta.name), set())

        dependents |= self.file_to_testing.get(self._file_key(self.file_to_testing, basename), set())
        return dependents

    def resolve_triggers(self, key: str) -> set[str]:
        """
        Trigger keys (normalized names or file basenames) that ``key`` depends on.

        ``key`` may be a file reference or the name of a known workflow.
        """
        normalized = normalize_name(key)
        if not normalized:
            return set()

        basename = self._file_key(self.testing_to_trigger, file_basename(normalized))
        if basename not in self.testing_to_trigger:
            meta = self._match_meta(normalized)
            if meta is not None:
                basename = meta.basename
        return set(self.testing_to_trigger.get(basename, set()))

    def is_trigger(self, key: str) -> bool:
        """True when at least one workflow depends on ``key``."""
        return bool(self.resolve_dependents(key))

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view with sorted lists for stable output."""

        def _sorted(mapping: dict[str, set[str]]) -> dict[str, list[str]]:
            return {key: sorted(values) for key, values in sorted(mapping.items())}

        return {
            "workflows": [meta.to_dict() for meta in self.workflows],
            "nameToTesting": _sorted(self.name_to_testing),
            "fileToTesting": _sorted(self.file_to_testing),
            "testingToTrigger": _sorted(self.testing_to_trigger),
            "parseErrors": [error.to_dict() for error in self.parse_errors],
        }
