from src.core.config.loader import load_domain_config
from src.core.config.models import AgentConfig, DomainConfig, LogThresholds, OrchestratorSettings, ToolOptions
from src.core.config.env import get_app_db_url

__all__ = [
    "load_domain_config",
    "AgentConfig",
    "DomainConfig",
    "LogThresholds",
    "OrchestratorSettings",
    "ToolOptions",
    "get_app_db_url",
]
