from __future__ import annotations

import os

from src.agents.registry import AgentRegistry
from src.core.config.env import get_app_db_url
from src.core.config.loader import load_domain_config
from src.core.config.models import DomainConfig
from src.llm.structured import LangChainStructuredGenerator
from src.orchestrator.service import AgentOrchestrator
from src.orchestrator.session import RunTraceStore

_CONFIG: DomainConfig | None = None
_ORCHESTRATOR: AgentOrchestrator | None = None


def get_config() -> DomainConfig:
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_domain_config(os.environ.get("CONFIG_PATH", "config/domains/marketing.json"))
    return _CONFIG


def get_orchestrator() -> AgentOrchestrator:
    global _ORCHESTRATOR
    if _ORCHESTRATOR is None:
        config = get_config()
        _ORCHESTRATOR = AgentOrchestrator(
            LangChainStructuredGenerator(),
            AgentRegistry.from_domain_config(config),
            config.orchestrator,
        )
    return _ORCHESTRATOR


def get_trace_store() -> RunTraceStore | None:
    url = get_app_db_url(dict(os.environ))
    return RunTraceStore(url) if url else None
