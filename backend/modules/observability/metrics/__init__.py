"""Step metrics for agent pipeline runs.

Counts invocations, cumulative duration and failures per step name,
process-wide. Snapshots are plain copies safe to serialize.

Example:
    from backend.modules.observability.metrics import get_step_metrics

    metrics = get_step_metrics()
    metrics.record("generate_reel", 842.0, success=True)
    snapshot = metrics.get_all()
"""

from .metrics_aggregator import (
    MetricsSample,
    StepMetricsAggregator,
    get_step_metrics,
    set_step_metrics,
)

__all__ = [
    "MetricsSample",
    "StepMetricsAggregator",
    "get_step_metrics",
    "set_step_metrics",
]
