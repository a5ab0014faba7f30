"""Agent interface consumed by the pipeline orchestrator."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import Field

from backend.types import ConfiguredBaseModel


class AgentResult(ConfiguredBaseModel):
    """Structured outcome of Agent.process"""
    ok: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None) -> "AgentResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "AgentResult":
        return cls(ok=False, error=error)


class AgentMetadata(ConfiguredBaseModel):
    """Descriptive information exposed by an agent"""
    name: str
    description: str = ""
    capabilities: List[str] = Field(default_factory=list)
    extra: Dict[str, Any] = Field(default_factory=dict)


class BaseAgent(ABC):
    """
    Opaque unit of work run by pipeline steps.

    Concrete agents (content generation, email, analytics...) live outside the
    orchestrator; it only ever calls `process` and `get_metadata`.
    """

    name: str = ""
    description: str = ""

    @abstractmethod
    async def process(self, input: Any) -> AgentResult:
        """
        Run the agent on one input.

        Args:
            input: Agent-specific input (threaded context or a step override)

        Returns:
            AgentResult; ok=False signals a failure without raising
        """

    def get_metadata(self) -> AgentMetadata:
        return AgentMetadata(
            name=self.name or self.__class__.__name__,
            description=self.description,
        )
