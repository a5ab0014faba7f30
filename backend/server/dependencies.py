"""FastAPI dependencies for the admin pipeline endpoints."""
import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request

from backend.config import OrchestratorSettings
from backend.logger import logger
from backend.modules.observability.metrics.metrics_aggregator import StepMetricsAggregator
from backend.modules.observability.tracing.trace_recorder import TraceRecorder
from backend.modules.orchestration.agents.agent_registry import AgentRegistry
from backend.modules.orchestration.pipeline.pipeline_builder import PipelineBuilder
from backend.modules.run_history.run_history_store import RunHistoryStore


def get_settings(request: Request) -> OrchestratorSettings:
    return request.app.state.settings


def get_agent_registry(request: Request) -> AgentRegistry:
    return request.app.state.agent_registry


def get_trace_recorder(request: Request) -> TraceRecorder:
    return request.app.state.trace_recorder


def get_metrics(request: Request) -> StepMetricsAggregator:
    return request.app.state.metrics


def get_run_history_store(request: Request) -> RunHistoryStore:
    return request.app.state.run_history_store


def get_pipeline_builder(request: Request) -> PipelineBuilder:
    return PipelineBuilder(
        request.app.state.agent_registry,
        disallowed_agents=request.app.state.settings.disallowed_agents,
    )


async def require_admin(
    request: Request,
    x_admin_token: Optional[str] = Header(default=None),
) -> None:
    """Reject requests without the configured admin token (401)."""
    expected = request.app.state.settings.admin_token
    if not expected:
        return
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        logger.warning(f"Rejected admin request to {request.url.path}: invalid admin token")
        raise HTTPException(status_code=401, detail="Unauthorized")


async def check_admin_rate_limit(request: Request) -> None:
    """Reject clients that exceeded the admin pipeline rate (429)."""
    client_id = request.client.host if request.client else None
    if not request.app.state.rate_limiter.check(client_id):
        raise HTTPException(status_code=429, detail="Too many pipeline runs, try again later")
