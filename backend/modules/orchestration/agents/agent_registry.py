"""Registry mapping agent names to agent instances."""
from typing import Any, Dict, List, Optional

from backend.logger import logger
from backend.modules.orchestration.agents.base_agent import BaseAgent


class AgentRegistry:
    """
    Registry of agents available to pipelines.
    Lookup is by string name; the orchestrator only depends on has/get/list.
    """

    def __init__(self, agents: Optional[Dict[str, BaseAgent]] = None):
        """
        Initialize agent registry.

        Args:
            agents: Optional initial mapping of name to agent
        """
        self._agents: Dict[str, Any] = {}
        for name, agent in (agents or {}).items():
            self.register(agent, name=name)

    def register(self, agent: BaseAgent, name: Optional[str] = None) -> BaseAgent:
        """
        Register an agent instance.

        Args:
            agent: Agent to register
            name: Registry key (defaults to agent.name, then the class name)

        Returns:
            The registered agent
        """
        key = name or getattr(agent, "name", "") or agent.__class__.__name__
        if key in self._agents:
            logger.warning(f"Replacing registered agent: {key}")
        self._agents[key] = agent
        logger.debug(f"Registered agent: {key}")
        return agent

    def has(self, name: str) -> bool:
        """Check if an agent name is registered"""
        return name in self._agents

    def get(self, name: str) -> Optional[BaseAgent]:
        """
        Get a registered agent.

        Args:
            name: Agent name

        Returns:
            Agent, or None if not found or missing required methods
        """
        agent = self._agents.get(name)
        if agent is None:
            return None
        if not callable(getattr(agent, "process", None)) or not callable(
            getattr(agent, "get_metadata", None)
        ):
            logger.warning(f"Agent {name} is invalid or missing required methods")
            return None
        return agent

    def list(self) -> List[str]:
        """List all registered agent names"""
        return list(self._agents.keys())

    def get_all_metadata(self) -> List[Dict[str, Any]]:
        """
        Get metadata for every registered agent.
        Agents that fail to describe themselves are reported, not raised.
        """
        entries = []
        for name, agent in self._agents.items():
            try:
                if not callable(getattr(agent, "get_metadata", None)):
                    raise TypeError("Agent is invalid or missing get_metadata method")
                metadata = agent.get_metadata()
                if hasattr(metadata, "model_dump"):
                    metadata = metadata.model_dump()
                entries.append({"name": name, "metadata": metadata})
            except Exception as e:
                logger.error(f"Error getting metadata for {name}: {e}")
                entries.append({"name": name, "status": "error", "error": str(e)})
        return entries

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __len__(self) -> int:
        return len(self._agents)
