import asyncio
import threading

import pytest

from backend.modules.observability.metrics.metrics_aggregator import (
    MetricsSample,
    StepMetricsAggregator,
)


class TestStepMetricsAggregator:
    """StepMetricsAggregator unit tests"""

    @pytest.fixture
    def metrics(self):
        return StepMetricsAggregator()

    def test_record_accumulates(self, metrics):
        metrics.record("draft", 100.0, True)
        metrics.record("draft", 50.0, False)

        sample = metrics.get("draft")

        assert sample.count == 2
        assert sample.total_duration_ms == 150.0
        assert sample.failure_count == 1
        assert sample.average_duration_ms == 75.0
        assert sample.failure_rate == 50.0

    def test_unknown_step(self, metrics):
        assert metrics.get("missing") is None
        assert metrics.get_all() == {}

    def test_snapshots_are_equal_without_records(self, metrics):
        metrics.record("a", 10.0, True)
        metrics.record("b", 20.0, False)

        first = metrics.get_all()
        second = metrics.get_all()

        assert first == second
        assert first["a"] is not second["a"]

    def test_snapshot_is_detached(self, metrics):
        metrics.record("a", 10.0, True)
        snapshot = metrics.get_all()

        metrics.record("a", 10.0, True)

        assert snapshot["a"].count == 1
        assert metrics.get("a").count == 2

    def test_snapshot_restricted_to_names(self, metrics):
        metrics.record("a", 1.0, True)
        metrics.record("b", 1.0, True)

        assert set(metrics.snapshot(["a", "never"])) == {"a"}

    def test_negative_duration_clamped(self, metrics):
        metrics.record("a", -5.0, True)

        assert metrics.get("a").total_duration_ms == 0.0

    def test_threaded_updates_not_lost(self, metrics):
        def worker():
            for _ in range(500):
                metrics.record("shared", 1.0, True)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert metrics.get("shared").count == 4000

    @pytest.mark.asyncio
    async def test_concurrent_tasks_not_lost(self, metrics):
        async def worker():
            for _ in range(100):
                metrics.record("shared", 1.0, False)
                await asyncio.sleep(0)

        await asyncio.gather(*[worker() for _ in range(10)])

        sample = metrics.get("shared")
        assert sample.count == 1000
        assert sample.failure_count == 1000

    def test_clear(self, metrics):
        metrics.record("a", 1.0, True)
        metrics.clear()

        assert metrics.get_all() == {}

    def test_sample_serializes_derived_fields(self):
        sample = MetricsSample(count=4, total_duration_ms=100.0, failure_count=1)

        data = sample.model_dump(by_alias=True)

        assert data["totalDurationMs"] == 100.0
        assert data["averageDurationMs"] == 25.0
        assert data["failureRate"] == 25.0
