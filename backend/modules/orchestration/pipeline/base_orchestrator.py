"""Shared step execution for pipeline orchestrators."""
import asyncio
import contextvars
import inspect
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

import async_timeout

from backend.config import get_orchestrator_settings
from backend.logger import logger
from backend.modules.observability.metrics.metrics_aggregator import (
    StepMetricsAggregator,
    get_step_metrics,
)
from backend.modules.observability.tracing.trace_event import (
    TraceEvent,
    TracePhase,
    summarize_payload,
)
from backend.modules.observability.tracing.trace_recorder import (
    TraceRecorder,
    get_trace_recorder,
)
from backend.modules.orchestration.agents.base_agent import AgentResult
from backend.modules.orchestration.exceptions import PipelineSpecError, StepTimeoutError
from backend.modules.orchestration.pipeline.cancellation import (
    CancellationToken,
    cancellation_scope,
)
from backend.modules.orchestration.pipeline.schemas import Step
from backend.modules.orchestration.schemas import PipelineResult, StepOutcome

# Marks constructor arguments left to the orchestrator settings; None disables a timeout
USE_SETTINGS: Any = object()


def _task_cancelling() -> bool:
    """True when the running task itself has a pending cancellation request"""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


@dataclass
class RunState:
    """Mutable state of one pipeline invocation"""
    run_id: str
    token: CancellationToken
    started_at: float
    deadline: Optional[float] = None  # event loop time
    outcomes: List[StepOutcome] = field(default_factory=list)
    events: List[TraceEvent] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed_at(self) -> Optional[str]:
        for outcome in self.outcomes:
            if not outcome.ok:
                return outcome.name
        return None

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - asyncio.get_running_loop().time()


class BasePipelineOrchestrator:
    """
    Runs named steps with tracing, metrics, timeouts and error capture.
    Subclasses decide the order steps run in via `_execute`.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        trace_recorder: Optional[TraceRecorder] = None,
        metrics: Optional[StepMetricsAggregator] = None,
        step_timeout_sec: Optional[float] = USE_SETTINGS,
        pipeline_timeout_sec: Optional[float] = USE_SETTINGS,
        payload_summary_chars: Optional[int] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            name: Pipeline name used in logs and results
            trace_recorder: Recorder for step events (process default if omitted)
            metrics: Step metrics aggregator (process default if omitted)
            step_timeout_sec: Default timeout for steps without their own; None disables
            pipeline_timeout_sec: Deadline for a whole run; None disables
            payload_summary_chars: Bound on output summaries in trace events
        """
        settings = get_orchestrator_settings()
        self.name = name or "pipeline"
        self.trace_recorder = trace_recorder if trace_recorder is not None else get_trace_recorder()
        self.metrics = metrics if metrics is not None else get_step_metrics()
        self.step_timeout_sec = (
            settings.step_timeout_sec if step_timeout_sec is USE_SETTINGS else step_timeout_sec
        )
        self.pipeline_timeout_sec = (
            settings.pipeline_timeout_sec
            if pipeline_timeout_sec is USE_SETTINGS
            else pipeline_timeout_sec
        )
        self.payload_summary_chars = (
            settings.payload_summary_chars
            if payload_summary_chars is None
            else payload_summary_chars
        )

    @staticmethod
    def _validate_names(steps: Iterable[Step]) -> None:
        seen = set()
        for step in steps:
            if not isinstance(step, Step):
                raise PipelineSpecError(f"Expected a Step, got {type(step).__name__}")
            if not step.name:
                raise PipelineSpecError("Step name must not be empty")
            if step.name in seen:
                raise PipelineSpecError(f"Duplicate step name: {step.name}")
            seen.add(step.name)

    async def run(self, initial_context: Any = None) -> PipelineResult:
        """
        Execute the pipeline.

        Never raises for step failures or orchestrator errors: both are
        reported in the returned PipelineResult.

        Args:
            initial_context: Context handed to the first step

        Returns:
            PipelineResult with per-step outcomes, trace and metrics
        """
        state = RunState(
            run_id=str(uuid.uuid4()),
            token=CancellationToken(),
            started_at=time.time(),
        )
        if self.pipeline_timeout_sec is not None:
            state.deadline = asyncio.get_running_loop().time() + self.pipeline_timeout_sec

        logger.info(f"Starting pipeline execution: {self.name} (run {state.run_id})")

        try:
            await self._execute(initial_context, state)
        except Exception as e:
            logger.error(f"Pipeline '{self.name}' aborted by internal error: {e}")
            state.error = f"Orchestrator error: {e}"

        result = self._build_result(state)

        logger.info(
            f"Pipeline '{self.name}' completed: "
            f"ok={result.ok}, steps={len(result.steps)}, failed_at={result.failed_at}, "
            f"time={result.duration_ms:.0f}ms"
        )
        return result

    async def _execute(self, context: Any, state: RunState) -> None:
        raise NotImplementedError

    def _deadline_exceeded(self, state: RunState) -> bool:
        """Check the pipeline budget before starting more work"""
        remaining = state.remaining()
        if remaining is not None and remaining <= 0:
            self._mark_deadline(state)
            return True
        return state.error is not None

    def _mark_deadline(self, state: RunState) -> None:
        if state.error is None:
            state.error = f"Pipeline deadline of {self.pipeline_timeout_sec:g}s exceeded"
            state.token.cancel(state.error)
            logger.error(f"Pipeline '{self.name}': {state.error}")

    def _effective_timeout(self, step: Step, state: RunState) -> Tuple[Optional[float], bool]:
        """
        Timeout for one step: its own or the default, capped by the pipeline budget.

        Returns:
            (timeout in seconds or None, whether the pipeline budget is the binding limit)
        """
        timeout = step.timeout_sec if step.timeout_sec is not None else self.step_timeout_sec
        remaining = state.remaining()
        if remaining is None:
            return timeout, False
        remaining = max(remaining, 0.0)
        if timeout is None or remaining < timeout:
            return remaining, True
        return timeout, False

    def _trace(self, state: RunState, step_name: str, phase: TracePhase, payload: Optional[str] = None):
        try:
            event = TraceEvent(
                run_id=state.run_id,
                step_name=step_name,
                phase=phase,
                payload_summary=payload,
            )
        except Exception as e:
            logger.warning(f"Could not build trace event for step '{step_name}': {e}")
            return
        state.events.append(event)
        self.trace_recorder.record(event)

    def _trace_started(self, step: Step, state: RunState) -> None:
        logger.debug(f"Executing step: {step.name}")
        self._trace(state, step.name, TracePhase.STARTED)

    async def _execute_step(self, step: Step, context: Any, state: RunState) -> StepOutcome:
        """
        Execute one step and record its outcome.

        The `started` event must already have been recorded by the caller.
        Exceptions, failed AgentResults and timeouts all become a failed
        StepOutcome; only cancellation of the run itself propagates.

        Args:
            step: Step to run
            context: Input context for the step
            state: Current run state

        Returns:
            StepOutcome, also appended to state.outcomes
        """
        timeout, bound_by_deadline = self._effective_timeout(step, state)
        token = state.token.child()
        output = None
        error = None
        start = time.perf_counter()

        timer = async_timeout.timeout(timeout)
        try:
            with cancellation_scope(token):
                async with timer:
                    result = await self._invoke(step, context)
            if isinstance(result, AgentResult):
                if result.ok:
                    output = result.data
                else:
                    error = result.error or "Agent reported failure"
            else:
                output = result
        except asyncio.TimeoutError as e:
            if not timer.expired:
                error = str(e) or type(e).__name__
            else:
                timeout_error = StepTimeoutError(step.name, timeout or 0.0, bound_by_deadline)
                error = str(timeout_error)
                token.cancel(error)
                if bound_by_deadline:
                    self._mark_deadline(state)
        except asyncio.CancelledError as e:
            if _task_cancelling():
                raise
            error = str(e) or type(e).__name__
        except Exception as e:
            error = str(e) or type(e).__name__

        duration_ms = (time.perf_counter() - start) * 1000
        ok = error is None
        outcome = StepOutcome(
            name=step.name,
            ok=ok,
            output=output,
            error=error,
            duration_ms=duration_ms,
        )

        if ok:
            self._trace(
                state,
                step.name,
                TracePhase.SUCCEEDED,
                summarize_payload(output, self.payload_summary_chars),
            )
            logger.debug(f"Step '{step.name}' completed successfully")
        else:
            self._trace(state, step.name, TracePhase.FAILED, error)
            logger.error(f"Step '{step.name}' failed: {error}")

        self.metrics.record(step.name, duration_ms, ok)
        state.outcomes.append(outcome)
        return outcome

    async def _invoke(self, step: Step, context: Any) -> Any:
        """Call step.run, in the default executor if it is not a coroutine function"""
        if inspect.iscoroutinefunction(step.run):
            result = await step.run(context)
        else:
            loop = asyncio.get_running_loop()
            ctx = contextvars.copy_context()
            result = await loop.run_in_executor(None, ctx.run, step.run, context)

        if inspect.isawaitable(result):
            result = await result
        return result

    def _build_result(self, state: RunState) -> PipelineResult:
        ended_at = time.time()
        failed_at = state.failed_at
        step_names = [outcome.name for outcome in state.outcomes]
        return PipelineResult(
            ok=failed_at is None and state.error is None,
            run_id=state.run_id,
            pipeline=self.name,
            steps=list(state.outcomes),
            failed_at=failed_at,
            trace=list(state.events),
            metrics=self.metrics.snapshot(step_names),
            error=state.error,
            started_at=state.started_at,
            ended_at=ended_at,
            duration_ms=(ended_at - state.started_at) * 1000,
        )
