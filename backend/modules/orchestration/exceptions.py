"""Errors raised while building or validating pipelines.

Step failures are never raised out of an orchestrator; they are recorded in
the PipelineResult. Only configuration problems detected before execution
surface as exceptions.
"""
from typing import Iterable


class PipelineSpecError(ValueError):
    """Malformed pipeline specification (empty, nested groups, duplicate names...)."""


class UnknownAgentError(PipelineSpecError):
    """Step references an agent name the registry does not know."""

    def __init__(self, agent_name: str, available: Iterable[str] = ()):
        self.agent_name = agent_name
        available = ", ".join(available)
        super().__init__(f"Unknown agent: {agent_name}. Available agents: {available}")


class DisallowedAgentError(PipelineSpecError):
    """Step references an agent that may not run through this surface."""

    def __init__(self, agent_name: str):
        self.agent_name = agent_name
        super().__init__(f"Agent '{agent_name}' cannot be run in a pipeline")


class StepTimeoutError(TimeoutError):
    """A step exceeded its own timeout or the remaining pipeline budget."""

    def __init__(self, step_name: str, timeout_sec: float, pipeline_deadline: bool = False):
        self.step_name = step_name
        self.timeout_sec = timeout_sec
        self.pipeline_deadline = pipeline_deadline
        super().__init__(f"Step '{step_name}' timed out after {timeout_sec:g}s")
