"""Observability for agent pipeline runs.

Provides the two shared, process-wide collectors every orchestrator writes to:
- Tracing: append-only step lifecycle events, queryable by recency or run
- Metrics: per-step invocation count, cumulative duration and failures

Both are plain in-memory structures. Orchestrators accept explicit instances
so tests can isolate them; the getters below return the process defaults.
"""

from .metrics.metrics_aggregator import (
    MetricsSample,
    StepMetricsAggregator,
    get_step_metrics,
)
from .tracing.trace_event import TraceEvent, TracePhase
from .tracing.trace_recorder import TraceRecorder, get_trace_recorder

__all__ = [
    "MetricsSample",
    "StepMetricsAggregator",
    "get_step_metrics",
    "TraceEvent",
    "TracePhase",
    "TraceRecorder",
    "get_trace_recorder",
]
