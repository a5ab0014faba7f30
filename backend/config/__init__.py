"""
Backend Configuration Module

Provides settings for pipeline orchestration and the admin pipeline endpoints.
"""

from backend.config.orchestrator_settings import (
    GroupFailurePolicyName,
    OrchestratorSettings,
    get_orchestrator_settings,
)

__all__ = [
    "GroupFailurePolicyName",
    "OrchestratorSettings",
    "get_orchestrator_settings",
]
