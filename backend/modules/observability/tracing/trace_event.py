"""Trace event model for pipeline step lifecycle tracing."""

import json
import time
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from backend.types import CamelCaseModel


class TracePhase(str, Enum):
    """Lifecycle phase of a traced step."""

    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TraceEvent(CamelCaseModel):
    """Single step lifecycle event.

    Attributes:
        run_id: Identifier of the pipeline run that emitted the event
        step_name: Name of the step the event belongs to
        phase: started, succeeded or failed
        timestamp: Unix timestamp (seconds) of emission
        payload_summary: Size-bounded output summary (succeeded) or error text (failed)
    """

    run_id: str
    step_name: str
    phase: TracePhase
    timestamp: float = Field(default_factory=time.time)
    payload_summary: Optional[str] = None


def summarize_payload(payload: Any, max_chars: int = 500) -> Optional[str]:
    """Render a step output as a bounded JSON string.

    Args:
        payload: Step output of any type
        max_chars: Maximum length of the summary, including the ellipsis

    Returns:
        JSON summary, truncated with "..." when longer than max_chars
    """
    if payload is None:
        return None

    try:
        text = json.dumps(payload, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        text = repr(payload)

    if len(text) <= max_chars:
        return text
    return text[: max(max_chars - 3, 0)] + "..."
