"""Per-day run overview for a repository"""

from collections.abc import Iterable

from omnilens.domain.health import OverviewMetrics
from omnilens.domain.runs import DailyBucket, RunConclusion
from omnilens.domain.workflows import Workflow
from omnilens.utils.workflow_names import file_basename


def calculate_overview(buckets: Iterable[DailyBucket], workflows: Iterable[Workflow] = ()) -> OverviewMetrics:
    """
    Summarize one day's normalized buckets.

    Each bucket counts once, by its latest run.

    Args:
        buckets: The day's DailyBuckets
        workflows: Tracked workflows; active ones without a bucket are reported as missing

    Returns:
        OverviewMetrics for the day

    Example:
        overview = calculate_overview(buckets_by_day[today], store.list_workflows("api"))
        print(f"{overview.failed_runs} failed, {overview.didnt_run_count} didn't run")
    """
    metrics = OverviewMetrics()
    seen_ids: set[int] = set()
    seen_files: set[str] = set()

    for bucket in buckets:
        latest = bucket.latest
        seen_ids.add(bucket.workflow_id)
        if latest.path:
            seen_files.add(file_basename(latest.path))

        if latest.is_completed:
            metrics.completed_runs += 1
            metrics.total_runtime_seconds += latest.duration_seconds or 0
        else:
            metrics.in_progress_runs += 1

        if latest.conclusion is RunConclusion.SUCCESS:
            metrics.passed_runs += 1
        elif latest.conclusion is RunConclusion.FAILURE:
            metrics.failed_runs += 1

    tracked = [w for w in workflows if w.is_active]
    metrics.missing_workflows = sorted(
        w.path for w in tracked if w.id not in seen_ids and w.basename not in seen_files
    )
    metrics.total_workflows = len(seen_ids | {w.id for w in tracked})
    return metrics
