from src.core.config.loader import load_domain_config
from src.core.config.models import AgentConfig, DomainConfig, OrchestratorSettings
from src.core.exceptions import (
    ConfigError,
    EmptyPlan,
    GenerationError,
    InvalidAgentType,
    InvalidDependency,
    OrchestrationCancelled,
    OrchestratorError,
    PlanGenerationError,
    ReplanError,
    StepExecutionError,
)

__all__ = [
    "load_domain_config",
    "AgentConfig",
    "DomainConfig",
    "OrchestratorSettings",
    "ConfigError",
    "EmptyPlan",
    "GenerationError",
    "InvalidAgentType",
    "InvalidDependency",
    "OrchestrationCancelled",
    "OrchestratorError",
    "PlanGenerationError",
    "ReplanError",
    "StepExecutionError",
]
