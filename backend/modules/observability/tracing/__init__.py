"""Step tracing for agent pipeline runs.

Records started/succeeded/failed events for every pipeline step into a
bounded, process-wide buffer. Each run tags its events with a run_id so a
single run's trace can be sliced out of the shared buffer.

Components:
    - TraceEvent: Step lifecycle event with bounded payload summary
    - TraceRecorder: Append-only buffer, queryable by recency or run

Example:
    from backend.modules.observability.tracing import get_trace_recorder

    recorder = get_trace_recorder()
    for event in recorder.get_recent(10):
        print(event.step_name, event.phase)
"""

from .trace_event import TraceEvent, TracePhase, summarize_payload
from .trace_recorder import TraceRecorder, get_trace_recorder, set_trace_recorder

__all__ = [
    "TraceEvent",
    "TracePhase",
    "summarize_payload",
    "TraceRecorder",
    "get_trace_recorder",
    "set_trace_recorder",
]
