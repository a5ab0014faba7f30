"""Build orchestrators from declarative step definitions and YAML pipeline files."""
import os
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import yaml
from pydantic import ValidationError

from backend.config import get_orchestrator_settings
from backend.logger import logger
from backend.modules.orchestration.agents.agent_registry import AgentRegistry
from backend.modules.orchestration.exceptions import (
    DisallowedAgentError,
    PipelineSpecError,
    UnknownAgentError,
)
from backend.modules.orchestration.pipeline.parallel_pipeline_orchestrator import (
    ParallelPipelineOrchestrator,
)
from backend.modules.orchestration.pipeline.pipeline_orchestrator import PipelineOrchestrator
from backend.modules.orchestration.pipeline.schemas import (
    PipelineDefinition,
    PipelineElement,
    Step,
    StepDefinition,
    StepGroup,
)

RawStep = Union[StepDefinition, Dict[str, Any]]
RawElement = Union[RawStep, Sequence[RawStep]]


class PipelineBuilder:
    """
    Resolves agent names through the registry and turns step definitions
    into Steps and StepGroups. All validation happens here, before any step runs.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        disallowed_agents: Optional[Iterable[str]] = None,
    ):
        """
        Initialize pipeline builder.

        Args:
            registry: Agent registry used to resolve step agents
            disallowed_agents: Agent names that may not be used (settings default if omitted)
        """
        self.registry = registry
        if disallowed_agents is None:
            disallowed_agents = get_orchestrator_settings().disallowed_agents
        self.disallowed_agents = set(disallowed_agents)

    def build_steps(self, definitions: Sequence[RawStep]) -> List[Step]:
        """
        Build a sequential spec.

        Raises:
            PipelineSpecError: Empty spec, groups, or duplicate names
            UnknownAgentError: Agent not registered
            DisallowedAgentError: Agent on the disallowed list
        """
        if not definitions:
            raise PipelineSpecError("Pipeline must contain at least one step")

        parsed = []
        for definition in definitions:
            if isinstance(definition, (list, tuple)):
                raise PipelineSpecError("Parallel groups are not allowed in a sequential pipeline")
            parsed.append(self._parse(definition))

        names = self._assign_names(parsed)
        return [self._build_step(d, name) for d, name in zip(parsed, names)]

    def build_elements(self, definitions: Sequence[RawElement]) -> List[PipelineElement]:
        """
        Build a parallel spec; nested lists denote concurrent groups.

        Raises:
            PipelineSpecError: Empty spec, empty or nested groups, or duplicate names
            UnknownAgentError: Agent not registered
            DisallowedAgentError: Agent on the disallowed list
        """
        if not definitions:
            raise PipelineSpecError("Pipeline must contain at least one step")

        shaped: List[Union[StepDefinition, List[StepDefinition]]] = []
        for element in definitions:
            if isinstance(element, (list, tuple)):
                if not element:
                    raise PipelineSpecError("Parallel group must contain at least one step")
                group = []
                for member in element:
                    if isinstance(member, (list, tuple)):
                        raise PipelineSpecError("Parallel groups cannot be nested")
                    group.append(self._parse(member))
                shaped.append(group)
            else:
                shaped.append(self._parse(element))

        flat = [d for e in shaped for d in (e if isinstance(e, list) else [e])]
        names = iter(self._assign_names(flat))

        elements: List[PipelineElement] = []
        for element in shaped:
            if isinstance(element, list):
                elements.append(StepGroup([self._build_step(d, next(names)) for d in element]))
            else:
                elements.append(self._build_step(element, next(names)))
        return elements

    def _parse(self, definition: RawStep) -> StepDefinition:
        if isinstance(definition, StepDefinition):
            return definition
        if not isinstance(definition, dict):
            raise PipelineSpecError(
                f"Step must be an object with an 'agent' field, got {type(definition).__name__}"
            )
        try:
            return StepDefinition(**definition)
        except ValidationError as e:
            raise PipelineSpecError(f"Invalid step definition: {e}") from e

    def _assign_names(self, definitions: List[StepDefinition]) -> List[str]:
        """
        Explicit names are kept; unnamed steps take their agent name, with a
        numeric suffix when the same agent appears more than once.
        """
        explicit = [d.name for d in definitions if d.name]
        duplicates = [name for name, count in Counter(explicit).items() if count > 1]
        if duplicates:
            raise PipelineSpecError(f"Duplicate step name: {', '.join(sorted(duplicates))}")

        taken = set(explicit)
        occurrences: Counter = Counter()
        names = []
        for definition in definitions:
            if definition.name:
                names.append(definition.name)
                continue
            count = occurrences[definition.agent] + 1
            candidate = definition.agent if count == 1 else f"{definition.agent}_{count}"
            while candidate in taken:
                count += 1
                candidate = f"{definition.agent}_{count}"
            occurrences[definition.agent] = count
            taken.add(candidate)
            names.append(candidate)
        return names

    def _build_step(self, definition: StepDefinition, name: str) -> Step:
        if definition.agent in self.disallowed_agents:
            raise DisallowedAgentError(definition.agent)
        if not self.registry.has(definition.agent):
            raise UnknownAgentError(definition.agent, self.registry.list())

        agent = self.registry.get(definition.agent)
        if agent is None:
            raise PipelineSpecError(f"Agent '{definition.agent}' failed to load or is invalid")

        return Step.for_agent(
            name=name,
            agent=agent,
            input=definition.input,
            timeout_sec=definition.timeout_sec,
        )


def load_pipeline_definition(
    pipeline_name: str, pipelines_dir: Optional[str] = None
) -> PipelineDefinition:
    """
    Load a named pipeline definition from YAML.

    Args:
        pipeline_name: File stem under pipelines_dir
        pipelines_dir: Directory of <name>.yaml files (settings default if omitted)

    Returns:
        PipelineDefinition

    Raises:
        FileNotFoundError: If pipeline file not found
        PipelineSpecError: If the file is not a valid pipeline definition
    """
    pipelines_dir = pipelines_dir or get_orchestrator_settings().pipelines_dir
    if os.sep in pipeline_name or "/" in pipeline_name or pipeline_name.startswith("."):
        raise PipelineSpecError(f"Invalid pipeline name: {pipeline_name}")

    pipeline_path = os.path.join(pipelines_dir, f"{pipeline_name}.yaml")
    if not os.path.exists(pipeline_path):
        raise FileNotFoundError(f"Pipeline file not found: {pipeline_path}")

    with open(pipeline_path, "r") as f:
        pipeline_data = yaml.safe_load(f)

    if not isinstance(pipeline_data, dict):
        raise PipelineSpecError(f"Pipeline file {pipeline_path} must contain a mapping")

    pipeline_data.setdefault("name", pipeline_name)
    try:
        definition = PipelineDefinition(**pipeline_data)
    except ValidationError as e:
        raise PipelineSpecError(f"Invalid pipeline definition in {pipeline_path}: {e}") from e

    logger.debug(f"Loaded pipeline definition '{definition.name}' from {pipeline_path}")
    return definition


def build_orchestrator(
    definition: PipelineDefinition,
    builder: PipelineBuilder,
    **kwargs,
) -> PipelineOrchestrator:
    """
    Build the orchestrator a pipeline definition describes.

    Args:
        definition: Parsed pipeline definition
        builder: Builder bound to an agent registry
        **kwargs: Orchestrator overrides (trace_recorder, metrics, ...)

    Returns:
        PipelineOrchestrator or ParallelPipelineOrchestrator
    """
    if definition.step_timeout_sec is not None:
        kwargs.setdefault("step_timeout_sec", definition.step_timeout_sec)
    if definition.pipeline_timeout_sec is not None:
        kwargs.setdefault("pipeline_timeout_sec", definition.pipeline_timeout_sec)
    kwargs.setdefault("name", definition.name)

    if definition.mode == "parallel":
        return ParallelPipelineOrchestrator(
            builder.build_elements(definition.steps),
            group_failure_policy=definition.group_failure_policy,
            **kwargs,
        )
    return PipelineOrchestrator(builder.build_steps(definition.steps), **kwargs)
