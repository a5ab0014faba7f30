"""FastAPI application exposing the admin pipeline endpoints."""
from typing import Dict, Optional

from fastapi import FastAPI

from backend.config import OrchestratorSettings, get_orchestrator_settings
from backend.logger import logger
from backend.modules.observability.metrics.metrics_aggregator import (
    StepMetricsAggregator,
    get_step_metrics,
)
from backend.modules.observability.tracing.trace_recorder import (
    TraceRecorder,
    get_trace_recorder,
)
from backend.modules.orchestration.agents.agent_registry import AgentRegistry
from backend.modules.run_history.run_history_store import (
    RunHistoryStore,
    get_run_history_store,
)
from backend.server.rate_limiter import ClientRateLimiter
from backend.server.routers.pipelines import router as pipelines_router


def create_app(
    registry: Optional[AgentRegistry] = None,
    settings: Optional[OrchestratorSettings] = None,
    run_history_store: Optional[RunHistoryStore] = None,
    trace_recorder: Optional[TraceRecorder] = None,
    metrics: Optional[StepMetricsAggregator] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        registry: Agents available to pipelines (empty registry if omitted)
        settings: Orchestrator settings (environment defaults if omitted)
        run_history_store: Destination for completed runs
        trace_recorder: Shared step trace buffer
        metrics: Shared step metrics

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_orchestrator_settings()
    logger.setLevel(settings.log_level.upper())

    app = FastAPI(title="Agent Pipelines", version="0.1.0")
    app.state.settings = settings
    app.state.agent_registry = registry if registry is not None else AgentRegistry()
    app.state.run_history_store = (
        run_history_store if run_history_store is not None else get_run_history_store()
    )
    app.state.trace_recorder = (
        trace_recorder if trace_recorder is not None else get_trace_recorder()
    )
    app.state.metrics = metrics if metrics is not None else get_step_metrics()
    app.state.rate_limiter = ClientRateLimiter(settings.admin_rate_limit_per_minute)

    app.include_router(pipelines_router, prefix="/api")

    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        return {"status": "healthy", "service": "agent-pipelines"}

    logger.info(f"Pipeline API ready with {len(app.state.agent_registry)} registered agents")
    return app
