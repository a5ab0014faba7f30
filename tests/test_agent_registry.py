import pytest

from backend.modules.orchestration.agents.agent_registry import AgentRegistry

from .conftest import BrokenMetadataAgent, EchoAgent, FailingAgent


class TestAgentRegistry:
    """AgentRegistry unit tests"""

    def test_register_uses_agent_name(self):
        registry = AgentRegistry()
        agent = EchoAgent()

        registry.register(agent)

        assert registry.has("EchoAgent")
        assert "EchoAgent" in registry
        assert registry.get("EchoAgent") is agent
        assert registry.list() == ["EchoAgent"]

    def test_register_with_explicit_name(self):
        registry = AgentRegistry()
        registry.register(EchoAgent(), name="CaptionAgent")

        assert registry.list() == ["CaptionAgent"]

    def test_initial_mapping(self):
        registry = AgentRegistry({"a": EchoAgent(), "b": FailingAgent()})

        assert len(registry) == 2
        assert registry.list() == ["a", "b"]

    def test_replacing_keeps_latest(self):
        registry = AgentRegistry()
        first, second = EchoAgent(), EchoAgent()
        registry.register(first)
        registry.register(second)

        assert registry.get("EchoAgent") is second
        assert len(registry) == 1

    def test_missing_agent(self):
        registry = AgentRegistry()

        assert registry.has("Nope") is False
        assert registry.get("Nope") is None

    def test_invalid_agent_returns_none(self):
        registry = AgentRegistry()
        registry.register(object(), name="NotAnAgent")

        assert registry.has("NotAnAgent") is True
        assert registry.get("NotAnAgent") is None

    def test_metadata_reports_errors_per_agent(self):
        registry = AgentRegistry()
        registry.register(EchoAgent())
        registry.register(BrokenMetadataAgent())

        entries = {entry["name"]: entry for entry in registry.get_all_metadata()}

        assert entries["EchoAgent"]["metadata"]["description"] == "Echoes its input"
        assert entries["BrokenMetadataAgent"]["status"] == "error"
        assert entries["BrokenMetadataAgent"]["error"] == "metadata unavailable"

    def test_empty_registry_is_usable(self):
        registry = AgentRegistry()

        assert registry.list() == []
        assert registry.get_all_metadata() == []
