"""Sequential pipeline orchestrator."""
from typing import Any, List, Optional, Sequence, Tuple

from backend.modules.orchestration.pipeline.base_orchestrator import (
    BasePipelineOrchestrator,
    RunState,
)
from backend.modules.orchestration.pipeline.schemas import Step


class PipelineOrchestrator(BasePipelineOrchestrator):
    """
    Runs steps one after another, threading each output into the next step.
    Halts at the first failed step.

    Example:
        pipeline = PipelineOrchestrator([
            Step(name="double", run=lambda x: x * 2),
            Step.for_agent("caption", caption_agent),
        ])
        result = await pipeline.run(5)
    """

    def __init__(self, steps: Sequence[Step], **kwargs):
        """
        Initialize sequential orchestrator.

        Args:
            steps: Ordered steps; names must be unique
            **kwargs: See BasePipelineOrchestrator
        """
        super().__init__(**kwargs)
        self.steps: List[Step] = list(steps)
        self._validate_names(self.steps)

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self.steps]

    async def _execute(self, context: Any, state: RunState) -> None:
        for step in self.steps:
            proceed, context = await self._run_single(step, context, state)
            if not proceed:
                return

    async def _run_single(
        self, step: Step, context: Any, state: RunState
    ) -> Tuple[bool, Optional[Any]]:
        """
        Run one step in sequence.

        Returns:
            (whether the pipeline may continue, context for the next element)
        """
        if self._deadline_exceeded(state):
            return False, context

        self._trace_started(step, state)
        outcome = await self._execute_step(step, context, state)
        if not outcome.ok:
            return False, context
        return True, outcome.output
