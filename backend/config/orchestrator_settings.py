"""
Orchestrator Settings

Runtime configuration for the agent pipeline orchestrator: step and pipeline
deadlines, group failure policy, trace/metrics buffers, run history and the
admin HTTP surface.

Usage:
    from backend.config import get_orchestrator_settings

    settings = get_orchestrator_settings()
    executor = PipelineOrchestrator(steps, step_timeout_sec=settings.step_timeout_sec)

Every field can be overridden with a ``PIPELINE_<FIELD_NAME>`` environment
variable (e.g. ``PIPELINE_STEP_TIMEOUT_SEC=10``). Use ``none`` to disable an
optional limit and commas to separate list values.
"""

import os
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field

GroupFailurePolicyName = Literal["fail_fast", "continue"]

ENV_PREFIX = "PIPELINE_"


class OrchestratorSettings(BaseModel):
    """
    Settings for pipeline execution and the admin pipeline endpoints.

    Deadlines:
    - step_timeout_sec applies to every step that does not declare its own
    - pipeline_timeout_sec caps the whole run; remaining budget caps each step
    """

    step_timeout_sec: Optional[float] = Field(
        default=30.0,
        gt=0,
        description="Default per-step timeout in seconds (None disables)",
    )

    pipeline_timeout_sec: Optional[float] = Field(
        default=300.0,
        gt=0,
        description="Deadline for a whole pipeline run in seconds (None disables)",
    )

    group_failure_policy: GroupFailurePolicyName = Field(
        default="fail_fast",
        description="'fail_fast' halts after a group with any failure, 'continue' proceeds on partial success",
    )

    trace_buffer_size: int = Field(
        default=1000,
        ge=10,
        le=100_000,
        description="Maximum trace events retained process-wide",
    )

    payload_summary_chars: int = Field(
        default=500,
        ge=16,
        le=10_000,
        description="Maximum length of a step output summary in trace events",
    )

    run_history_limit: int = Field(
        default=500,
        ge=1,
        description="Maximum runs kept by the in-memory run history store",
    )

    run_history_path: Optional[str] = Field(
        default=None,
        description="JSONL file for run history (None keeps history in memory)",
    )

    pipelines_dir: str = Field(
        default="config/pipelines",
        description="Directory holding named pipeline definitions (<name>.yaml)",
    )

    disallowed_agents: List[str] = Field(
        default_factory=lambda: ["AdminSupervisorAgent"],
        description="Agents that may not be run through the admin pipeline endpoints",
    )

    admin_token: Optional[str] = Field(
        default=None,
        description="Expected X-Admin-Token header value (None disables the check)",
    )

    admin_rate_limit_per_minute: int = Field(
        default=30,
        ge=1,
        description="Pipeline runs allowed per client per minute",
    )

    log_level: str = Field(default="INFO")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OrchestratorSettings":
        """
        Build settings from PIPELINE_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            Validated OrchestratorSettings
        """
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        for field_name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is None:
                continue
            raw = raw.strip()
            if field_name == "disallowed_agents":
                overrides[field_name] = [item.strip() for item in raw.split(",") if item.strip()]
            elif raw.lower() in ("none", "null", ""):
                overrides[field_name] = None
            else:
                overrides[field_name] = raw

        return cls(**overrides)


_settings: Optional[OrchestratorSettings] = None


def get_orchestrator_settings() -> OrchestratorSettings:
    """
    Get or create the process-wide orchestrator settings.

    Returns:
        OrchestratorSettings loaded from the environment
    """
    global _settings
    if _settings is None:
        _settings = OrchestratorSettings.from_env()
    return _settings
