"""Schemas for pipeline execution."""
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Literal, Optional, Union

from pydantic import Field

from backend.modules.orchestration.schemas import GroupFailurePolicy
from backend.types import ConfiguredBaseModel

StepRun = Callable[[Any], Union[Any, Awaitable[Any]]]


@dataclass
class Step:
    """
    A named unit of work in a pipeline.

    Attributes:
        name: Identifier, unique within one pipeline, used for traces and metrics
        run: Maps the threaded context to the step output; may be sync or async
        agent: Agent the step wraps, if any (never inspected by the orchestrator)
        timeout_sec: Per-step timeout overriding the orchestrator default
    """

    name: str
    run: StepRun
    agent: Any = None
    timeout_sec: Optional[float] = None

    @classmethod
    def for_agent(
        cls,
        name: str,
        agent: Any,
        input: Any = None,
        timeout_sec: Optional[float] = None,
    ) -> "Step":
        """
        Build a step that calls agent.process.

        Args:
            name: Step name
            agent: Agent exposing process(input)
            input: Override input: a value, or a function of the threaded
                context. None passes the threaded context through.
            timeout_sec: Optional per-step timeout

        Returns:
            Step wrapping the agent
        """

        async def run(context: Any) -> Any:
            if callable(input):
                agent_input = input(context)
            elif input is not None:
                agent_input = input
            else:
                agent_input = context

            result = agent.process(agent_input)
            if inspect.isawaitable(result):
                result = await result
            return result

        return cls(name=name, run=run, agent=agent, timeout_sec=timeout_sec)


@dataclass
class StepGroup:
    """Steps executed concurrently; the group completes when every member settles."""

    steps: List[Step] = field(default_factory=list)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def names(self) -> List[str]:
        return [step.name for step in self.steps]


PipelineElement = Union[Step, StepGroup]


class StepDefinition(ConfiguredBaseModel):
    """Declarative step: an agent name plus optional input override"""
    agent: str
    input: Optional[Any] = None  # Replaces the threaded context when set
    name: Optional[str] = None  # Defaults to the agent name
    timeout_sec: Optional[float] = Field(default=None, gt=0)


class PipelineDefinition(ConfiguredBaseModel):
    """Definition of a complete named pipeline"""
    name: str
    description: Optional[str] = None
    mode: Literal["sequential", "parallel"] = "sequential"
    group_failure_policy: Optional[GroupFailurePolicy] = None
    step_timeout_sec: Optional[float] = Field(default=None, gt=0)
    pipeline_timeout_sec: Optional[float] = Field(default=None, gt=0)
    default_input: Dict[str, Any] = {}
    steps: List[Union[StepDefinition, List[StepDefinition]]]
