import json

import pytest

from backend.modules.observability.tracing.trace_event import (
    TraceEvent,
    TracePhase,
    summarize_payload,
)
from backend.modules.observability.tracing.trace_recorder import TraceRecorder


def _event(run_id, step, phase=TracePhase.STARTED):
    return TraceEvent(run_id=run_id, step_name=step, phase=phase)


class TestTraceRecorder:
    """TraceRecorder unit tests"""

    @pytest.fixture
    def recorder(self):
        return TraceRecorder(max_events=5)

    def test_get_recent_is_newest_first(self, recorder):
        for i in range(3):
            recorder.record(_event("r1", f"s{i}"))

        assert [e.step_name for e in recorder.get_recent(2)] == ["s2", "s1"]

    def test_get_recent_spans_runs(self, recorder):
        recorder.record(_event("r1", "a"))
        recorder.record(_event("r2", "b"))

        assert {e.run_id for e in recorder.get_recent(10)} == {"r1", "r2"}

    def test_get_recent_non_positive_limit(self, recorder):
        recorder.record(_event("r1", "a"))

        assert recorder.get_recent(0) == []
        assert recorder.get_recent(-1) == []

    def test_buffer_is_bounded(self, recorder):
        for i in range(8):
            recorder.record(_event("r1", f"s{i}"))

        assert len(recorder) == 5
        assert recorder.get_recent(10)[-1].step_name == "s3"

    def test_get_run_filters_in_emission_order(self, recorder):
        recorder.record(_event("r1", "a"))
        recorder.record(_event("r2", "x"))
        recorder.record(_event("r1", "a", TracePhase.SUCCEEDED))

        events = recorder.get_run("r1")

        assert [(e.step_name, e.phase) for e in events] == [
            ("a", "started"),
            ("a", "succeeded"),
        ]
        assert recorder.get_run("missing") == []

    def test_record_never_raises(self, recorder, monkeypatch):
        class BrokenBuffer:
            def append(self, _):
                raise RuntimeError("buffer unavailable")

        monkeypatch.setattr(recorder, "_events", BrokenBuffer())

        recorder.record(_event("r1", "a"))

    def test_event_serializes_camel_case(self):
        event = TraceEvent(
            run_id="r1",
            step_name="draft",
            phase=TracePhase.FAILED,
            payload_summary="boom",
        )

        data = event.model_dump(by_alias=True)

        assert data["runId"] == "r1"
        assert data["stepName"] == "draft"
        assert data["phase"] == "failed"
        assert data["payloadSummary"] == "boom"


class TestSummarizePayload:

    def test_none_has_no_summary(self):
        assert summarize_payload(None) is None

    def test_small_payload_is_json(self):
        assert json.loads(summarize_payload({"a": 1})) == {"a": 1}

    def test_long_payload_truncated(self):
        summary = summarize_payload("x" * 1000, max_chars=50)

        assert len(summary) == 50
        assert summary.endswith("...")

    def test_non_json_payload_uses_str(self):
        class Custom:
            def __str__(self):
                return "custom"

        assert summarize_payload(Custom()) == '"custom"'
