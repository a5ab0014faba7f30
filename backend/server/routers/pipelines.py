"""Admin endpoints for running agent pipelines and inspecting their history.

Pipeline endpoints answer 200 with a PipelineResult body whether or not the
pipeline succeeded. HTTP errors are reserved for requests that never reached
the orchestrator: invalid specs (400), auth (401), rate limit (429), unknown
named pipelines (404) and malformed bodies (422).
"""

import time
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import Field

from backend.config import OrchestratorSettings
from backend.logger import logger
from backend.modules.observability.metrics.metrics_aggregator import StepMetricsAggregator
from backend.modules.observability.tracing.trace_recorder import TraceRecorder
from backend.modules.orchestration.agents.agent_registry import AgentRegistry
from backend.modules.orchestration.exceptions import PipelineSpecError
from backend.modules.orchestration.pipeline.base_orchestrator import BasePipelineOrchestrator
from backend.modules.orchestration.pipeline.parallel_pipeline_orchestrator import (
    ParallelPipelineOrchestrator,
)
from backend.modules.orchestration.pipeline.pipeline_builder import (
    PipelineBuilder,
    build_orchestrator,
    load_pipeline_definition,
)
from backend.modules.orchestration.pipeline.pipeline_orchestrator import PipelineOrchestrator
from backend.modules.orchestration.schemas import GroupFailurePolicy, PipelineResult
from backend.modules.run_history.run_history_store import RunHistoryStore, save_pipeline_run
from backend.server.dependencies import (
    check_admin_rate_limit,
    get_agent_registry,
    get_metrics,
    get_pipeline_builder,
    get_run_history_store,
    get_settings,
    get_trace_recorder,
    require_admin,
)
from backend.types import ConfiguredBaseModel

router = APIRouter(
    prefix="/admin/pipelines",
    tags=["pipelines"],
    dependencies=[Depends(require_admin)],
)


class RunPipelineRequest(ConfiguredBaseModel):
    """Sequential pipeline request"""
    steps: List[Any] = Field(..., description="Ordered steps: {agent, input?, name?}")
    input: Optional[Any] = Field(default=None, description="Initial context")
    name: Optional[str] = None


class ParallelPipelineRequest(ConfiguredBaseModel):
    """Parallel pipeline request; nested arrays are concurrent groups"""
    steps: List[Any] = Field(..., description="Steps or arrays of steps")
    input: Optional[Any] = Field(default=None, description="Initial context")
    name: Optional[str] = None
    policy: Optional[GroupFailurePolicy] = None


class NamedPipelineRequest(ConfiguredBaseModel):
    """Request to run a pipeline defined in a YAML file"""
    input: Optional[Any] = None


def _error_result(pipeline: str, error: str) -> PipelineResult:
    now = time.time()
    return PipelineResult(
        ok=False,
        run_id=str(uuid.uuid4()),
        pipeline=pipeline,
        error=error,
        started_at=now,
        ended_at=now,
        duration_ms=0.0,
    )


def _orchestrator_options(
    settings: OrchestratorSettings,
    recorder: TraceRecorder,
    metrics: StepMetricsAggregator,
) -> Dict[str, Any]:
    return {
        "trace_recorder": recorder,
        "metrics": metrics,
        "step_timeout_sec": settings.step_timeout_sec,
        "pipeline_timeout_sec": settings.pipeline_timeout_sec,
        "payload_summary_chars": settings.payload_summary_chars,
    }


async def _run_and_persist(
    orchestrator: BasePipelineOrchestrator,
    initial_context: Any,
    store: RunHistoryStore,
    background_tasks: BackgroundTasks,
) -> PipelineResult:
    try:
        result = await orchestrator.run(initial_context)
    except Exception as e:
        logger.error(f"Pipeline '{orchestrator.name}' raised at the boundary: {e}")
        result = _error_result(orchestrator.name, f"Orchestrator error: {e}")
    background_tasks.add_task(save_pipeline_run, store, orchestrator.name, result)
    return result


@router.post(
    "/run",
    response_model=PipelineResult,
    dependencies=[Depends(check_admin_rate_limit)],
)
async def run_pipeline(
    request: RunPipelineRequest,
    background_tasks: BackgroundTasks,
    builder: PipelineBuilder = Depends(get_pipeline_builder),
    settings: OrchestratorSettings = Depends(get_settings),
    recorder: TraceRecorder = Depends(get_trace_recorder),
    metrics: StepMetricsAggregator = Depends(get_metrics),
    store: RunHistoryStore = Depends(get_run_history_store),
) -> PipelineResult:
    """Run steps sequentially, halting at the first failure."""
    name = request.name or "admin-sequential"
    try:
        steps = builder.build_steps(request.steps)
    except PipelineSpecError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Could not build pipeline '{name}': {e}")
        return _error_result(name, f"Orchestrator error: {e}")

    orchestrator = PipelineOrchestrator(
        steps, name=name, **_orchestrator_options(settings, recorder, metrics)
    )
    return await _run_and_persist(orchestrator, request.input, store, background_tasks)


@router.post(
    "/parallel",
    response_model=PipelineResult,
    dependencies=[Depends(check_admin_rate_limit)],
)
async def run_parallel_pipeline(
    request: ParallelPipelineRequest,
    background_tasks: BackgroundTasks,
    builder: PipelineBuilder = Depends(get_pipeline_builder),
    settings: OrchestratorSettings = Depends(get_settings),
    recorder: TraceRecorder = Depends(get_trace_recorder),
    metrics: StepMetricsAggregator = Depends(get_metrics),
    store: RunHistoryStore = Depends(get_run_history_store),
) -> PipelineResult:
    """Run steps and concurrent groups in declared order."""
    name = request.name or "admin-parallel"
    try:
        elements = builder.build_elements(request.steps)
    except PipelineSpecError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Could not build pipeline '{name}': {e}")
        return _error_result(name, f"Orchestrator error: {e}")

    orchestrator = ParallelPipelineOrchestrator(
        elements,
        group_failure_policy=request.policy or settings.group_failure_policy,
        name=name,
        **_orchestrator_options(settings, recorder, metrics),
    )
    return await _run_and_persist(orchestrator, request.input, store, background_tasks)


@router.post(
    "/named/{pipeline_name}",
    response_model=PipelineResult,
    dependencies=[Depends(check_admin_rate_limit)],
)
async def run_named_pipeline(
    pipeline_name: str,
    background_tasks: BackgroundTasks,
    request: Optional[NamedPipelineRequest] = None,
    builder: PipelineBuilder = Depends(get_pipeline_builder),
    settings: OrchestratorSettings = Depends(get_settings),
    recorder: TraceRecorder = Depends(get_trace_recorder),
    metrics: StepMetricsAggregator = Depends(get_metrics),
    store: RunHistoryStore = Depends(get_run_history_store),
) -> PipelineResult:
    """Run a pipeline defined in <pipelines_dir>/<pipeline_name>.yaml."""
    try:
        definition = load_pipeline_definition(pipeline_name, settings.pipelines_dir)
        options = _orchestrator_options(settings, recorder, metrics)
        if definition.step_timeout_sec is not None:
            options.pop("step_timeout_sec")
        if definition.pipeline_timeout_sec is not None:
            options.pop("pipeline_timeout_sec")
        orchestrator = build_orchestrator(definition, builder, **options)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"Pipeline not found: {pipeline_name}")
    except PipelineSpecError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Could not build pipeline '{pipeline_name}': {e}")
        return _error_result(pipeline_name, f"Orchestrator error: {e}")

    initial_context = definition.default_input
    if request is not None and request.input is not None:
        initial_context = request.input
    return await _run_and_persist(orchestrator, initial_context, store, background_tasks)


@router.get("/history")
async def list_pipeline_runs(
    limit: int = Query(50, ge=1, le=500, description="Maximum runs to return"),
    store: RunHistoryStore = Depends(get_run_history_store),
) -> Dict[str, Any]:
    """List persisted runs, newest first."""
    runs = await store.list(limit=limit)
    return {"ok": True, "runs": runs}


@router.get("/history/{run_id}")
async def get_pipeline_run(
    run_id: str,
    store: RunHistoryStore = Depends(get_run_history_store),
) -> Dict[str, Any]:
    """Get one persisted run."""
    run = await store.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Pipeline run not found: {run_id}")
    return {"ok": True, "run": run}


@router.get("/agents")
async def list_agents(
    registry: AgentRegistry = Depends(get_agent_registry),
) -> Dict[str, Any]:
    """List registered agents and their metadata."""
    return {"agents": registry.get_all_metadata()}


@router.get("/metrics")
async def get_step_metrics(
    metrics: StepMetricsAggregator = Depends(get_metrics),
) -> Dict[str, Any]:
    """Cumulative per-step metrics since process start."""
    return {"metrics": metrics.get_all()}


@router.get("/trace")
async def get_recent_trace(
    limit: int = Query(50, ge=1, le=1000, description="Maximum events to return"),
    recorder: TraceRecorder = Depends(get_trace_recorder),
) -> Dict[str, Any]:
    """Most recent step events across all runs, newest first."""
    return {"events": recorder.get_recent(limit)}
