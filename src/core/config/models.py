from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class ToolOptions(BaseModel):
    use_knowledge_base: bool = True
    use_web_scraper: bool = True
    use_deep_search: bool = True
    use_rag_tool: bool = True


class AgentConfig(BaseModel):
    name: str
    system_prompt: str = ""  # appended to the shared base prompt
    model: str = "gpt-4o"
    temperature: float = Field(default=0.5, ge=0.0, le=2.0)
    max_tokens: int | None = None
    tool_options: ToolOptions = Field(default_factory=ToolOptions)


class LogThresholds(BaseModel):
    slow_ms: int = 2000
    important_ms: int = 5000

    @model_validator(mode="after")
    def _ordered(self) -> "LogThresholds":
        if self.important_ms < self.slow_ms:
            raise ValueError("important_ms must be >= slow_ms")
        return self


class OrchestratorSettings(BaseModel):
    planner_model: str = "gpt-4o-mini"
    planner_temperature: float = 0.0
    plan_retries: int = Field(default=2, ge=0)
    replan_retries: int = Field(default=1, ge=0)
    worker_retries: int = Field(default=1, ge=0)
    step_timeout_seconds: float = Field(default=60.0, gt=0)
    max_concurrent_steps: int | None = Field(default=None, gt=0)  # None = all ready steps at once
    max_iterations_cap: int = Field(default=10, gt=0)
    thresholds: LogThresholds = Field(default_factory=LogThresholds)


class DomainConfig(BaseModel):
    domain_id: str
    domain_name: str
    env_file_path: str | None = None
    default_agent: str = "default"
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    agents: list[AgentConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_agents(self) -> "DomainConfig":
        names = [a.name for a in self.agents]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate agent names: {', '.join(dupes)}")
        if self.agents and self.default_agent not in names:
            raise ValueError(f"default_agent '{self.default_agent}' is not defined in agents")
        return self
