"""Turn completed step outputs into the context handed to the final-answer stream."""
from __future__ import annotations

from typing import Mapping

from src.agents.registry import AgentRegistry
from src.core.contracts.agent import AgentOutput
from src.core.contracts.orchestrator import ContextMessage, ExecutionStatus, OrchestrationContext, WorkflowPlan
from src.core.exceptions import EmptyPlan


def context_message(operation_id: str, step_index: int, agent: str, output: AgentOutput) -> ContextMessage:
    return ContextMessage(
        id=f"ctx_{operation_id}_{step_index}",
        role="assistant",
        agent=agent,
        step_index=step_index,
        content=f"Context from {agent}: {output.result}",
    )


def compile_context(
    completed: Mapping[int, AgentOutput],
    final_plan: WorkflowPlan,
    status: ExecutionStatus,
    registry: AgentRegistry,
    operation_id: str,
) -> OrchestrationContext:
    """Messages follow step order, not completion order.

    The target model is the last step's agent model for a complete run and the
    default agent's model otherwise.
    """
    if not final_plan.steps:
        raise EmptyPlan("Cannot compile context for an empty plan.")
    messages = [
        context_message(operation_id, i, step.agent, completed[i])
        for i, step in enumerate(final_plan.steps)
        if i in completed
    ]
    target = registry.default_config.model
    if status is ExecutionStatus.COMPLETE:
        last = registry.get_config(final_plan.steps[-1].agent)
        if last is not None and last.model:
            target = last.model
    return OrchestrationContext(
        target_model_id=target,
        context_messages=messages,
        plan_summary=final_plan.agent_sequence,
    )
