import pytest
from pydantic import ValidationError

from backend.config.orchestrator_settings import OrchestratorSettings


class TestOrchestratorSettings:
    """Environment-driven orchestrator settings"""

    def test_defaults(self):
        settings = OrchestratorSettings.from_env({})

        assert settings.step_timeout_sec == 30.0
        assert settings.pipeline_timeout_sec == 300.0
        assert settings.group_failure_policy == "fail_fast"
        assert settings.trace_buffer_size == 1000
        assert settings.disallowed_agents == ["AdminSupervisorAgent"]
        assert settings.admin_token is None
        assert settings.run_history_path is None

    def test_overrides_from_environment(self):
        settings = OrchestratorSettings.from_env(
            {
                "PIPELINE_STEP_TIMEOUT_SEC": "12.5",
                "PIPELINE_GROUP_FAILURE_POLICY": "continue",
                "PIPELINE_DISALLOWED_AGENTS": "AdminSupervisorAgent, BillingAgent,",
                "PIPELINE_ADMIN_TOKEN": "secret",
                "UNRELATED": "ignored",
            }
        )

        assert settings.step_timeout_sec == 12.5
        assert settings.group_failure_policy == "continue"
        assert settings.disallowed_agents == ["AdminSupervisorAgent", "BillingAgent"]
        assert settings.admin_token == "secret"

    def test_none_disables_limits(self):
        settings = OrchestratorSettings.from_env(
            {"PIPELINE_STEP_TIMEOUT_SEC": "none", "PIPELINE_PIPELINE_TIMEOUT_SEC": "null"}
        )

        assert settings.step_timeout_sec is None
        assert settings.pipeline_timeout_sec is None

    def test_empty_disallowed_list(self):
        settings = OrchestratorSettings.from_env({"PIPELINE_DISALLOWED_AGENTS": ""})

        assert settings.disallowed_agents == []

    @pytest.mark.parametrize(
        "environ",
        [
            {"PIPELINE_STEP_TIMEOUT_SEC": "-1"},
            {"PIPELINE_GROUP_FAILURE_POLICY": "retry"},
            {"PIPELINE_TRACE_BUFFER_SIZE": "1"},
        ],
    )
    def test_invalid_values_rejected(self, environ):
        with pytest.raises(ValidationError):
            OrchestratorSettings.from_env(environ)
