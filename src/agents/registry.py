"""Read-only lookup from agent type to its configuration."""
from __future__ import annotations

from typing import Iterable

from src.agents.prompts import AGENT_PROMPTS, build_system_prompt
from src.core.config.models import AgentConfig, DomainConfig, ToolOptions
from src.core.exceptions import ConfigError

DEFAULT_AGENT = "default"


def default_agent_configs() -> list[AgentConfig]:
    """Built-in agent set used when the domain config defines no agents."""
    no_scraping = ToolOptions(use_web_scraper=False, use_deep_search=False)
    return [
        AgentConfig(name="default", temperature=0.5),
        AgentConfig(name="copywriting", temperature=0.7),
        AgentConfig(name="google-ads", temperature=0.4),
        AgentConfig(name="facebook-ads", temperature=0.4),
        AgentConfig(name="quiz", temperature=0.6, tool_options=no_scraping),
        AgentConfig(name="researcher", temperature=0.3),
        AgentConfig(name="copyeditor", temperature=0.3, tool_options=no_scraping),
    ]


class AgentRegistry:
    """Resolved agent configurations keyed by agent type.

    Safe to share between concurrent runs: nothing mutates it after construction.
    """

    def __init__(self, agents: Iterable[AgentConfig], default_type: str = DEFAULT_AGENT):
        resolved: dict[str, AgentConfig] = {}
        for agent in agents:
            if agent.name in resolved:
                raise ConfigError(f"Agent {agent.name} registered twice")
            addition = agent.system_prompt or AGENT_PROMPTS.get(agent.name, "")
            resolved[agent.name] = agent.model_copy(update={"system_prompt": build_system_prompt(addition)})
        if default_type not in resolved:
            raise ConfigError(f"Default agent '{default_type}' is not registered")
        self._agents = resolved
        self.default_type = default_type

    @classmethod
    def from_domain_config(cls, config: DomainConfig) -> "AgentRegistry":
        return cls(config.agents or default_agent_configs(), default_type=config.default_agent)

    @classmethod
    def with_defaults(cls) -> "AgentRegistry":
        return cls(default_agent_configs())

    def get_config(self, agent_type: str) -> AgentConfig | None:
        return self._agents.get(agent_type)

    @property
    def default_config(self) -> AgentConfig:
        return self._agents[self.default_type]

    @property
    def known_types(self) -> list[str]:
        return list(self._agents)

    @property
    def specialized_types(self) -> list[str]:
        return [name for name in self._agents if name != self.default_type]

    def __contains__(self, agent_type: object) -> bool:
        return agent_type in self._agents

    def __len__(self) -> int:
        return len(self._agents)
