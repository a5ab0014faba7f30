"""
Agent interface and registry used by pipeline steps.
"""
from backend.modules.orchestration.agents.agent_registry import AgentRegistry
from backend.modules.orchestration.agents.base_agent import (
    AgentMetadata,
    AgentResult,
    BaseAgent,
)

__all__ = [
    "AgentMetadata",
    "AgentRegistry",
    "AgentResult",
    "BaseAgent",
]
