"""Per-step counters and timers for pipeline runs.

Accumulates invocation count, cumulative duration and failure count per step
name for the lifetime of the process. There is no reset lifecycle and no
percentile or time-window support: this feeds a lightweight admin dashboard
and is not a replacement for a real metrics backend.
"""

import threading
from typing import Dict, Iterable, Optional

from pydantic import computed_field

from backend.types import CamelCaseModel


class MetricsSample(CamelCaseModel):
    """Aggregated counters for one step name.

    Attributes:
        count: Number of completed invocations (successes and failures)
        total_duration_ms: Sum of invocation durations in milliseconds
        failure_count: Number of failed invocations
    """

    count: int = 0
    total_duration_ms: float = 0.0
    failure_count: int = 0

    @computed_field
    @property
    def average_duration_ms(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total_duration_ms / self.count

    @computed_field
    @property
    def failure_rate(self) -> float:
        """Failure rate as percentage (0-100)."""
        if self.count == 0:
            return 0.0
        return (self.failure_count / self.count) * 100


class StepMetricsAggregator:
    """In-memory metrics keyed by step name.

    Every update happens in a single critical section, so concurrent runs
    sharing the aggregator never lose an increment.

    Example:
        metrics = StepMetricsAggregator()
        metrics.record("draft_caption", 120.5, success=True)
        metrics.record("draft_caption", 80.0, success=False)

        sample = metrics.get_all()["draft_caption"]
        sample.count            # 2
        sample.failure_count    # 1
    """

    def __init__(self):
        self._samples: Dict[str, MetricsSample] = {}
        self._lock = threading.Lock()

    def record(self, step_name: str, duration_ms: float, success: bool) -> None:
        """Record one completed step invocation.

        Args:
            step_name: Step (or agent) name the sample is attributed to
            duration_ms: Invocation duration in milliseconds
            success: Whether the invocation succeeded
        """
        with self._lock:
            sample = self._samples.get(step_name)
            if sample is None:
                sample = self._samples[step_name] = MetricsSample()
            sample.count += 1
            sample.total_duration_ms += max(duration_ms, 0.0)
            if not success:
                sample.failure_count += 1

    def get(self, step_name: str) -> Optional[MetricsSample]:
        """Get a copy of the sample for one step, or None if never recorded."""
        with self._lock:
            sample = self._samples.get(step_name)
            return sample.model_copy() if sample else None

    def get_all(self) -> Dict[str, MetricsSample]:
        """Get a snapshot of every step's metrics.

        Returns:
            Mapping of step name to a copy of its sample
        """
        with self._lock:
            return {name: sample.model_copy() for name, sample in self._samples.items()}

    def snapshot(self, step_names: Iterable[str]) -> Dict[str, MetricsSample]:
        """Get a snapshot restricted to the given step names.

        Args:
            step_names: Names to include; names never recorded are skipped

        Returns:
            Mapping of step name to a copy of its sample
        """
        with self._lock:
            return {
                name: self._samples[name].model_copy()
                for name in step_names
                if name in self._samples
            }

    def clear(self) -> None:
        """Drop all samples (tests only)."""
        with self._lock:
            self._samples.clear()


# Singleton instance
_step_metrics: Optional[StepMetricsAggregator] = None


def get_step_metrics() -> StepMetricsAggregator:
    """Get or create the singleton step metrics aggregator.

    Returns:
        StepMetricsAggregator instance
    """
    global _step_metrics
    if _step_metrics is None:
        _step_metrics = StepMetricsAggregator()
    return _step_metrics


def set_step_metrics(aggregator: StepMetricsAggregator) -> None:
    """Replace the singleton step metrics aggregator."""
    global _step_metrics
    _step_metrics = aggregator
