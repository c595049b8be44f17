"""Top-level entry: plan, execute unless trivially simple, compile context."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from src.agents.registry import AgentRegistry
from src.core.config.models import OrchestratorSettings
from src.core.contracts.orchestrator import (
    ExecutionResult,
    ExecutionStatus,
    OrchestrationContext,
    PlanKind,
    WorkflowPlan,
)
from src.core.exceptions import OrchestrationCancelled
from src.core.observability import Stopwatch, log_event, new_operation_id
from src.llm.structured import StructuredGenerator
from src.orchestrator.compiler import compile_context
from src.orchestrator.executor import CANCELLED, PlanExecutor, unless_cancelled
from src.orchestrator.planner import PlanGenerator, classify_plan, is_simple_default_plan

log = logging.getLogger("orchestrator")


@dataclass
class OrchestrationRun:
    operation_id: str
    plan: WorkflowPlan
    kind: PlanKind
    result: ExecutionResult | None  # None when the simple plan skipped execution
    context: OrchestrationContext

    @property
    def status(self) -> ExecutionStatus:
        return self.result.status if self.result is not None else ExecutionStatus.COMPLETE


class AgentOrchestrator:
    def __init__(self, generator: StructuredGenerator, registry: AgentRegistry, settings: OrchestratorSettings | None = None):
        self.registry = registry
        self.settings = settings or OrchestratorSettings()
        self.planner = PlanGenerator(generator, registry, self.settings)
        self.executor = PlanExecutor(generator, registry, self.planner, self.settings)

    async def generate_plan(self, request: str, agent_hint: str | None = None, operation_id: str | None = None) -> WorkflowPlan:
        return await self.planner.generate_plan(request, agent_hint, operation_id)

    async def execute_plan(
        self,
        plan: WorkflowPlan,
        request: str,
        cancel_event: asyncio.Event | None = None,
        operation_id: str | None = None,
    ) -> ExecutionResult:
        return await self.executor.execute_plan(plan, request, cancel_event, operation_id)

    async def run(
        self,
        request: str,
        agent_hint: str | None = None,
        cancel_event: asyncio.Event | None = None,
        operation_id: str | None = None,
    ) -> OrchestrationRun:
        """Plan generation failures propagate, as does OrchestrationCancelled when no plan exists yet.

        Everything after planning yields a run.
        """
        op = operation_id or new_operation_id("ctx")
        sw = Stopwatch()
        plan = await unless_cancelled(self.planner.generate_plan(request, agent_hint, op), cancel_event)
        if plan is CANCELLED:
            log.warning("Run %s cancelled during planning", op)
            raise OrchestrationCancelled(f"Orchestration {op} was cancelled during planning")
        kind = classify_plan(plan)

        if is_simple_default_plan(plan, self.registry.default_type):
            if cancel_event is not None and cancel_event.is_set():
                log.warning("Run %s cancelled before the simple plan was answered", op)
                result = ExecutionResult(final_plan=plan, status=ExecutionStatus.CANCELLED)
                context = compile_context({}, plan, result.status, self.registry, op)
                return OrchestrationRun(op, plan, kind, result, context)
            context = OrchestrationContext(
                target_model_id=self.registry.default_config.model,
                context_messages=[],
                plan_summary=plan.agent_sequence,
            )
            log_event(log, "Simple plan, skipping execution", operation="prepare_context", operation_id=op,
                      thresholds=self.settings.thresholds, duration_ms=sw.elapsed_ms, target_model=context.target_model_id)
            return OrchestrationRun(op, plan, kind, None, context)

        result = await self.executor.execute_plan(plan, request, cancel_event, op)
        context = compile_context(result.completed, result.final_plan, result.status, self.registry, op)
        log_event(log, "Context prepared", operation="prepare_context", operation_id=op,
                  thresholds=self.settings.thresholds, duration_ms=sw.elapsed_ms, status=result.status.value,
                  target_model=context.target_model_id, context_messages=len(context.context_messages),
                  plan=context.plan_summary)
        return OrchestrationRun(op, plan, kind, result, context)

    async def prepare_context(
        self,
        request: str,
        agent_hint: str | None = None,
        cancel_event: asyncio.Event | None = None,
        operation_id: str | None = None,
    ) -> OrchestrationContext:
        run = await self.run(request, agent_hint, cancel_event, operation_id)
        if run.status is ExecutionStatus.CANCELLED:
            raise OrchestrationCancelled(f"Orchestration {run.operation_id} was cancelled")
        return run.context
