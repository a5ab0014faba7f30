import asyncio
from typing import Any, List

import pytest

from backend.modules.observability.metrics.metrics_aggregator import StepMetricsAggregator
from backend.modules.observability.tracing.trace_recorder import TraceRecorder
from backend.modules.orchestration.agents.agent_registry import AgentRegistry
from backend.modules.orchestration.agents.base_agent import AgentResult, BaseAgent


class EchoAgent(BaseAgent):
    """Returns its input, recording every call"""

    name = "EchoAgent"
    description = "Echoes its input"

    def __init__(self):
        self.calls: List[Any] = []

    async def process(self, input: Any) -> AgentResult:
        self.calls.append(input)
        await asyncio.sleep(0)
        return AgentResult.success(input)


class FailingAgent(BaseAgent):
    name = "FailingAgent"

    async def process(self, input: Any) -> AgentResult:
        return AgentResult.failure("agent refused")


class SlowAgent(BaseAgent):
    name = "SlowAgent"

    def __init__(self, delay: float = 0.05):
        self.delay = delay

    async def process(self, input: Any) -> AgentResult:
        await asyncio.sleep(self.delay)
        return AgentResult.success({"slept": self.delay})


class BrokenMetadataAgent(BaseAgent):
    name = "BrokenMetadataAgent"

    async def process(self, input: Any) -> AgentResult:
        return AgentResult.success(input)

    def get_metadata(self):
        raise RuntimeError("metadata unavailable")


@pytest.fixture
def recorder():
    return TraceRecorder(max_events=1000)


@pytest.fixture
def metrics():
    return StepMetricsAggregator()


@pytest.fixture
def orchestrator_kwargs(recorder, metrics):
    """Isolated observability and generous deadlines for orchestrator tests"""
    return {
        "trace_recorder": recorder,
        "metrics": metrics,
        "step_timeout_sec": 5.0,
        "pipeline_timeout_sec": 10.0,
    }


@pytest.fixture
def echo_agent():
    return EchoAgent()


@pytest.fixture
def registry(echo_agent):
    registry = AgentRegistry()
    registry.register(echo_agent)
    registry.register(FailingAgent())
    registry.register(SlowAgent(0.01))
    registry.register(EchoAgent(), name="AdminSupervisorAgent")
    return registry
