"""Core schemas for orchestration module."""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_serializer
from pydantic_core import to_jsonable_python

from backend.modules.observability.metrics.metrics_aggregator import MetricsSample
from backend.modules.observability.tracing.trace_event import TraceEvent
from backend.types import CamelCaseModel


class GroupFailurePolicy(str, Enum):
    """What a parallel pipeline does after a group with failed members.

    FAIL_FAST: halt after the group settles if any member failed.
    CONTINUE: proceed if at least one member succeeded.
    A group whose members all failed halts the pipeline under both policies.
    """

    FAIL_FAST = "fail_fast"
    CONTINUE = "continue"


class StepOutcome(CamelCaseModel):
    """Outcome of one executed step"""
    name: str
    ok: bool
    output: Any = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    @field_serializer("output", when_used="json")
    def serialize_output(self, output: Any) -> Any:
        # Agent outputs are arbitrary; anything JSON cannot represent is sent as str()
        return to_jsonable_python(output, fallback=str)


class PipelineResult(CamelCaseModel):
    """Result from pipeline execution"""
    ok: bool
    run_id: str
    pipeline: Optional[str] = None
    steps: List[StepOutcome] = Field(default_factory=list)
    failed_at: Optional[str] = None
    trace: List[TraceEvent] = Field(default_factory=list)
    metrics: Dict[str, MetricsSample] = Field(default_factory=dict)
    error: Optional[str] = None
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    duration_ms: Optional[float] = None

    def get_step(self, name: str) -> Optional[StepOutcome]:
        """Find the outcome of a step by name"""
        for step in self.steps:
            if step.name == name:
                return step
        return None

    @property
    def outputs(self) -> Dict[str, Any]:
        """Outputs of the successful steps, keyed by step name"""
        return {step.name: step.output for step in self.steps if step.ok}
