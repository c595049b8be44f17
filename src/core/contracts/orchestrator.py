from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.core.contracts.agent import AgentOutput


class WorkflowStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    agent: str = Field(description="Agent type that runs this step.")
    task: str = Field(description="Specific instructions for the agent for this step.")
    depends_on: list[int] = Field(default_factory=list, description="Indices of steps (0-based) that must be completed before this step can start.")


class WorkflowPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    steps: list[WorkflowStep] = Field(default_factory=list, description="Sequence of steps to execute.")
    max_iterations: int = Field(default=5, gt=0, description="Maximum scheduling rounds before the workflow is abandoned.")

    @property
    def agent_sequence(self) -> list[str]:
        return [s.agent for s in self.steps]


class PlanKind(str, Enum):
    SIMPLE = "simple"
    COMPLEX = "complex"


class ExecutionStatus(str, Enum):
    COMPLETE = "complete"
    DEADLOCK = "deadlock"
    BUDGET_EXHAUSTED = "budget_exhausted"
    CANCELLED = "cancelled"


class ContextMessage(BaseModel):
    id: str
    role: str = "assistant"
    agent: str
    step_index: int
    content: str


class ExecutionResult(BaseModel):
    """Outcome of one executor run over a (possibly re-planned) workflow."""

    completed: dict[int, AgentOutput] = Field(default_factory=dict)
    final_plan: WorkflowPlan
    context_messages: list[ContextMessage] = Field(default_factory=list)
    status: ExecutionStatus
    iterations: int = 0
    replans: int = 0


class OrchestrationContext(BaseModel):
    target_model_id: str
    context_messages: list[ContextMessage] = Field(default_factory=list)
    plan_summary: list[str] = Field(default_factory=list)
    final_system_prompt: str | None = None  # left to the streaming layer
