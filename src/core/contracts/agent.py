from pydantic import BaseModel, Field


class AgentOutputMetadata(BaseModel):
    quality_score: int | None = Field(default=None, ge=1, le=10, description="Agent's self-assessment of output quality (1-10).")
    needs_revision: bool = Field(description="Flag indicating if the agent believes its output needs review or revision.")
    issues: list[str] | None = Field(default=None, description="Specific issues identified if revision is needed.")


class AgentOutput(BaseModel):
    """Structured output every worker agent returns for one step."""

    result: str = Field(description="The main output content generated by the agent.")
    metadata: AgentOutputMetadata = Field(description="Metadata about the agent's execution and output quality.")

    @property
    def needs_revision(self) -> bool:
        return self.metadata.needs_revision
