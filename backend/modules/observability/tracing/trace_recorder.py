"""Process-wide trace recorder for pipeline step events."""

import threading
from collections import deque
from typing import Deque, List, Optional

from backend.config import get_orchestrator_settings
from backend.logger import logger

from .trace_event import TraceEvent


class TraceRecorder:
    """Append-only, bounded buffer of step trace events.

    One recorder is shared by every pipeline run in the process; events of a
    single run are correlated through ``run_id``. Recording never raises so
    that tracing cannot break the pipeline it observes.

    Example:
        recorder = TraceRecorder(max_events=1000)
        recorder.record(TraceEvent(run_id="r1", step_name="draft", phase="started"))

        latest = recorder.get_recent(20)       # newest first, all runs
        run_events = recorder.get_run("r1")    # emission order, one run
    """

    def __init__(self, max_events: int = 1000):
        """Initialize trace recorder.

        Args:
            max_events: Maximum events retained; the oldest are dropped first
        """
        self.max_events = max_events
        self._events: Deque[TraceEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def record(self, event: TraceEvent) -> None:
        """Append an event to the buffer.

        Args:
            event: Trace event to record
        """
        try:
            with self._lock:
                self._events.append(event)
        except Exception as e:
            logger.warning(f"Dropping trace event for step '{getattr(event, 'step_name', '?')}': {e}")

    def get_recent(self, limit: int = 50) -> List[TraceEvent]:
        """Get the most recent events across all runs.

        Args:
            limit: Maximum number of events to return

        Returns:
            Events in reverse-chronological order
        """
        if limit <= 0:
            return []
        with self._lock:
            events = list(self._events)
        return list(reversed(events[-limit:]))

    def get_run(self, run_id: str) -> List[TraceEvent]:
        """Get all retained events of one pipeline run.

        Args:
            run_id: Run identifier assigned at pipeline start

        Returns:
            Events of the run in emission order
        """
        with self._lock:
            return [event for event in self._events if event.run_id == run_id]

    def __len__(self) -> int:
        return len(self._events)


# Global recorder instance
_global_recorder: Optional[TraceRecorder] = None


def get_trace_recorder() -> TraceRecorder:
    """Get or create the global trace recorder.

    Returns:
        Global TraceRecorder instance
    """
    global _global_recorder
    if _global_recorder is None:
        _global_recorder = TraceRecorder(get_orchestrator_settings().trace_buffer_size)
    return _global_recorder


def set_trace_recorder(recorder: TraceRecorder) -> None:
    """Set the global trace recorder.

    Args:
        recorder: Recorder instance to use globally
    """
    global _global_recorder
    _global_recorder = recorder
