"""
Pipeline execution module: sequential and parallel orchestrators for agent steps.
"""
from backend.modules.orchestration.pipeline.cancellation import (
    CancellationToken,
    current_cancellation,
)
from backend.modules.orchestration.pipeline.parallel_pipeline_orchestrator import (
    ParallelPipelineOrchestrator,
)
from backend.modules.orchestration.pipeline.pipeline_builder import (
    PipelineBuilder,
    build_orchestrator,
    load_pipeline_definition,
)
from backend.modules.orchestration.pipeline.pipeline_orchestrator import PipelineOrchestrator
from backend.modules.orchestration.pipeline.schemas import (
    PipelineDefinition,
    Step,
    StepDefinition,
    StepGroup,
)

__all__ = [
    "CancellationToken",
    "current_cancellation",
    "ParallelPipelineOrchestrator",
    "PipelineBuilder",
    "build_orchestrator",
    "load_pipeline_definition",
    "PipelineOrchestrator",
    "PipelineDefinition",
    "Step",
    "StepDefinition",
    "StepGroup",
]
