"""Parallel pipeline orchestrator: sequential elements and concurrent groups."""
import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from backend.config import get_orchestrator_settings
from backend.logger import logger
from backend.modules.orchestration.exceptions import PipelineSpecError
from backend.modules.orchestration.pipeline.base_orchestrator import RunState
from backend.modules.orchestration.pipeline.pipeline_orchestrator import PipelineOrchestrator
from backend.modules.orchestration.pipeline.schemas import (
    PipelineElement,
    Step,
    StepGroup,
)
from backend.modules.orchestration.schemas import GroupFailurePolicy, StepOutcome


class ParallelPipelineOrchestrator(PipelineOrchestrator):
    """
    Runs an ordered list whose elements are single steps or groups of steps.

    Single steps behave exactly as in PipelineOrchestrator. A group starts all
    of its members at once on the event loop with the same input context and
    waits for every member to settle before the next element starts. A failed
    member never cancels its siblings.

    After a group, the next element receives a dict of the successful members'
    outputs keyed by step name, in declared order. Whether a group with failed
    members halts the pipeline is decided by `group_failure_policy`; a group in
    which every member failed always halts it.

    Example:
        pipeline = ParallelPipelineOrchestrator([
            Step.for_agent("research", research_agent),
            [Step.for_agent("design_feed", feed_agent), Step.for_agent("caption", caption_agent)],
            Step.for_agent("publish", posting_agent),
        ])
        result = await pipeline.run({"topic": "visibility"})
    """

    def __init__(
        self,
        elements: Sequence[Union[PipelineElement, Sequence[Step]]],
        group_failure_policy: Optional[Union[GroupFailurePolicy, str]] = None,
        **kwargs,
    ):
        """
        Initialize parallel orchestrator.

        Args:
            elements: Steps, StepGroups, or lists/tuples of Steps (treated as groups)
            group_failure_policy: fail_fast or continue (settings default if omitted)
            **kwargs: See BasePipelineOrchestrator
        """
        self.elements: List[PipelineElement] = [self._normalize(element) for element in elements]
        policy = group_failure_policy or get_orchestrator_settings().group_failure_policy
        self.group_failure_policy = GroupFailurePolicy(policy)
        flat = [
            step
            for element in self.elements
            for step in (element.steps if isinstance(element, StepGroup) else [element])
        ]
        super().__init__(flat, **kwargs)

    @staticmethod
    def _normalize(element: Any) -> PipelineElement:
        if isinstance(element, Step):
            return element
        if isinstance(element, (StepGroup, list, tuple, set, frozenset)):
            members = list(element.steps if isinstance(element, StepGroup) else element)
            if not members:
                raise PipelineSpecError("Parallel group must contain at least one step")
            for member in members:
                if not isinstance(member, Step):
                    raise PipelineSpecError(
                        f"Parallel group members must be Steps, got {type(member).__name__}"
                    )
            return StepGroup(members)
        raise PipelineSpecError(
            f"Pipeline element must be a Step or a group of Steps, got {type(element).__name__}"
        )

    async def _execute(self, context: Any, state: RunState) -> None:
        for element in self.elements:
            if isinstance(element, StepGroup):
                proceed, context = await self._run_group(element, context, state)
            else:
                proceed, context = await self._run_single(element, context, state)
            if not proceed:
                return

    async def _run_group(
        self, group: StepGroup, context: Any, state: RunState
    ) -> Tuple[bool, Any]:
        """
        Run a group as a barrier.

        Returns:
            (whether the pipeline may continue, context for the next element)
        """
        if self._deadline_exceeded(state):
            return False, context

        for step in group:
            self._trace_started(step, state)

        logger.debug(f"Executing parallel group: {', '.join(group.names)}")

        settled = await asyncio.gather(
            *[self._execute_step(step, context, state) for step in group],
            return_exceptions=True,
        )

        outcomes: Dict[str, StepOutcome] = {}
        for step, result in zip(group, settled):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                # _execute_step captures step errors; this only guards the barrier
                logger.error(f"Group member '{step.name}' crashed the orchestrator: {result}")
                result = StepOutcome(name=step.name, ok=False, error=f"Orchestrator error: {result}")
                state.outcomes.append(result)
            outcomes[step.name] = result

        succeeded = {name: outcome.output for name, outcome in outcomes.items() if outcome.ok}
        failed = [name for name, outcome in outcomes.items() if not outcome.ok]

        if not failed:
            return True, succeeded

        if not succeeded:
            logger.error(f"Every member of parallel group failed: {', '.join(failed)}")
            return False, context

        if self.group_failure_policy == GroupFailurePolicy.FAIL_FAST:
            logger.error(f"Parallel group failed ({', '.join(failed)}), halting pipeline")
            return False, context

        logger.warning(
            f"Parallel group partially failed ({', '.join(failed)}), continuing with "
            f"{len(succeeded)} successful output(s)"
        )
        return True, succeeded
