"""
Workflow trigger graph construction

Infers which workflows trigger which other workflows purely from their
configuration text. Two kinds of declaration produce edges:

    on:
      workflow_run:
        workflows: ["Build"]          # "Build" -> this file   (name_to_testing)

    jobs:
      integration:
        uses: ./.github/workflows/e2e.yml   # this file -> e2e.yml  (file_to_testing)

Parsing is best-effort per workflow: a file that fails to parse contributes
no edges, is logged, and is reported in TriggerGraph.parse_errors.

Usage:
    from omnilens.health.graph_builder import build_graph

    graph = build_graph(workflows)
    graph.resolve_dependents("Build")   # {"integration.yml", ...}
"""

from collections.abc import Iterable
from typing import Any

import yaml

from omnilens.core import get_logger
from omnilens.domain.workflows import ParseResult, TriggerGraph, Workflow, WorkflowConfig, WorkflowMeta
from omnilens.utils.error_handling import log_and_continue
from omnilens.utils.workflow_names import (
    LOCAL_WORKFLOW_PREFIX,
    file_basename,
    is_local_workflow_reference,
    normalize_name,
)

logger = get_logger(__name__)

# PyYAML follows YAML 1.1, where a bare `on` key loads as boolean True
_TRIGGER_KEYS: tuple[Any, ...] = ("on", True, "events")


def _trigger_section(document: dict[Any, Any]) -> Any:
    for key in _TRIGGER_KEYS:
        if key in document:
            return document[key]
    return None


def _declares_event(triggers: Any, event: str) -> bool:
    if isinstance(triggers, dict):
        return event in triggers
    if isinstance(triggers, list):
        return event in triggers
    if isinstance(triggers, str):
        return triggers.strip() == event
    return False


def _upstream_names(triggers: Any) -> tuple[str, ...]:
    """Names listed under on.workflow_run.workflows (scalar or list)."""
    if not isinstance(triggers, dict):
        return ()
    workflow_run = triggers.get("workflow_run")
    if not isinstance(workflow_run, dict):
        return ()

    declared = workflow_run.get("workflows")
    if isinstance(declared, (str, int, float)) and not isinstance(declared, bool):
        candidates = [declared]
    elif isinstance(declared, list):
        candidates = [item for item in declared if isinstance(item, (str, int, float)) and not isinstance(item, bool)]
    else:
        return ()

    names: list[str] = []
    for candidate in candidates:
        name = str(candidate).strip()
        if name and name not in names:
            names.append(name)
    return tuple(names)


def _job_uses(job: Any) -> Any:
    if not isinstance(job, dict):
        return None
    uses = job.get("uses")
    if uses is None and isinstance(job.get("with"), dict):
        uses = job["with"].get("uses")
    return uses


def _called_local_files(document: dict[Any, Any]) -> tuple[str, ...]:
    """Basenames of same-repository workflow files referenced by jobs.*.uses."""
    jobs = document.get("jobs")
    if not isinstance(jobs, dict):
        return ()

    called: list[str] = []
    for job in jobs.values():
        uses = _job_uses(job)
        if not is_local_workflow_reference(uses):
            continue
        basename = file_basename(uses.strip()[len(LOCAL_WORKFLOW_PREFIX) :])
        if basename and basename not in called:
            called.append(basename)
    return tuple(called)


def parse_workflow_config(workflow: Workflow) -> ParseResult:
    """
    Extract trigger and job declarations from one workflow's configuration.

    Args:
        workflow: Workflow carrying raw configuration text

    Returns:
        ParseResult holding either a WorkflowConfig or a WorkflowConfigParseError.
        Empty text parses to an empty WorkflowConfig. Malformed individual
        fields (e.g. a non-list ``workflows``) yield no values for that field
        rather than an error.
    """
    if workflow.config_text is None:
        return ParseResult.failure(workflow, "no configuration text available")

    try:
        document = yaml.safe_load(workflow.config_text)
    except yaml.YAMLError as e:
        return ParseResult.failure(workflow, f"invalid YAML: {e}")

    if document is None:
        return ParseResult.success(workflow, WorkflowConfig())

    if not isinstance(document, dict):
        return ParseResult.failure(workflow, f"expected a mapping at top level, got {type(document).__name__}")

    triggers = _trigger_section(document)
    declared_name = document.get("name")

    config = WorkflowConfig(
        name=declared_name.strip() if isinstance(declared_name, str) and declared_name.strip() else None,
        is_reusable=_declares_event(triggers, "workflow_call"),
        upstream_names=_upstream_names(triggers),
        called_local_files=_called_local_files(document),
    )
    return ParseResult.success(workflow, config)


class TriggerGraphBuilder:
    """Build a TriggerGraph from a repository's workflows"""

    def parse_all(self, workflows: Iterable[Workflow]) -> list[ParseResult]:
        """Parse every workflow, logging (not raising) per-workflow failures"""
        results = []
        for workflow in workflows:
            result = parse_workflow_config(workflow)
            if result.error is not None:
                log_and_continue(
                    logger,
                    result.error,
                    context={"workflow_id": workflow.id, "path": workflow.path},
                    error_type="Workflow configuration parsing",
                )
            results.append(result)
        return results

    def build(self, workflows: Iterable[Workflow]) -> TriggerGraph:
        """
        Build the trigger graph.

        Mapping rules, applied independently:
            - each upstream name U of workflow W:   normalize(U) -> basename(W)   in name_to_testing
            - each local file F called by W:        basename(W) -> F              in file_to_testing

        The result depends only on the set of workflows, not their order.

        Args:
            workflows: Workflows with configuration text

        Returns:
            TriggerGraph with both forward maps, the derived reverse map,
            per-workflow metadata and any parse errors
        """
        name_to_testing: dict[str, set[str]] = {}
        file_to_testing: dict[str, set[str]] = {}
        metas: list[WorkflowMeta] = []
        errors = []

        for result in self.parse_all(workflows):
            metas.append(WorkflowMeta.from_parse(result))
            if result.config is None:
                errors.append(result.error)
                continue

            basename = result.workflow.basename
            if not basename:
                continue

            for upstream in result.config.upstream_names:
                key = normalize_name(upstream)
                if key:
                    name_to_testing.setdefault(key, set()).add(basename)

            for called in result.config.called_local_files:
                file_to_testing.setdefault(basename, set()).add(called)

        metas.sort(key=lambda m: (m.path, m.name, m.is_testing, m.is_trigger, m.is_reusable))
        errors.sort(key=lambda e: (e.path, e.message))

        graph = TriggerGraph(
            name_to_testing=name_to_testing,
            file_to_testing=file_to_testing,
            workflows=metas,
            parse_errors=errors,
        )
        logger.info(
            f"Built trigger graph: {len(metas)} workflows, {graph.edge_count} edges, {len(errors)} parse errors",
            extra={"workflow_count": len(metas), "edge_count": graph.edge_count, "parse_error_count": len(errors)},
        )
        return graph


def build_graph(workflows: Iterable[Workflow]) -> TriggerGraph:
    """Module-level shortcut for TriggerGraphBuilder().build(workflows)"""
    return TriggerGraphBuilder().build(workflows)
