"""
Orchestration module for running agent pipelines: sequential chains and
parallel groups of steps, with tracing, metrics and run results.
"""
from backend.modules.orchestration.schemas import (
    GroupFailurePolicy,
    PipelineResult,
    StepOutcome,
)

__all__ = [
    "GroupFailurePolicy",
    "PipelineResult",
    "StepOutcome",
]
