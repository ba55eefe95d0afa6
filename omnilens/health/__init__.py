"""
Workflow Health - normalization, trigger graph, classification and caching

    - normalizer: raw runs -> one DailyBucket per workflow per day
    - graph_builder: workflow configuration -> TriggerGraph
    - classifier: DailyBucket histories -> HealthRecord / transition counts
    - cache: TTL cache keyed by (repository, window)
    - aggregator: orchestrates the above over run and workflow sources
"""

from .aggregator import WindowedAggregator
from .cache import WindowCache
from .classifier import HealthClassifier, bucket_outcome, compare_buckets
from .graph_builder import TriggerGraphBuilder, build_graph, parse_workflow_config
from .normalizer import RunNormalizer, normalize
from .overview import calculate_overview

__all__ = [
    "RunNormalizer",
    "normalize",
    "TriggerGraphBuilder",
    "build_graph",
    "parse_workflow_config",
    "HealthClassifier",
    "bucket_outcome",
    "compare_buckets",
    "WindowCache",
    "WindowedAggregator",
    "calculate_overview",
]
