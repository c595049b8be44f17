import pytest

from src.agents.registry import AgentRegistry
from src.core.config.models import AgentConfig, OrchestratorSettings


@pytest.fixture
def registry():
    return AgentRegistry(
        [
            AgentConfig(name="default", model="gpt-4o-mini", temperature=0.5),
            AgentConfig(name="copywriting", model="gpt-4o", temperature=0.7),
            AgentConfig(name="copyeditor", model="gpt-4o", temperature=0.3),
            AgentConfig(name="researcher", model="gpt-4o", temperature=0.3),
        ]
    )


@pytest.fixture
def settings():
    return OrchestratorSettings(step_timeout_seconds=5, worker_retries=0)
