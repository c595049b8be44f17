from src.core.contracts.gateway import PrepareContextRequest
from src.core.contracts.orchestrator import (
    ContextMessage,
    ExecutionResult,
    ExecutionStatus,
    OrchestrationContext,
    PlanKind,
    WorkflowPlan,
    WorkflowStep,
)
from src.core.contracts.agent import AgentOutput, AgentOutputMetadata

__all__ = [
    "PrepareContextRequest",
    "ContextMessage",
    "ExecutionResult",
    "ExecutionStatus",
    "OrchestrationContext",
    "PlanKind",
    "WorkflowPlan",
    "WorkflowStep",
    "AgentOutput",
    "AgentOutputMetadata",
]
