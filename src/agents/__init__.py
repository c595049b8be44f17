from src.agents.registry import DEFAULT_AGENT, AgentRegistry, default_agent_configs

__all__ = ["DEFAULT_AGENT", "AgentRegistry", "default_agent_configs"]
