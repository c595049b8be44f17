"""Execute a WorkflowPlan in dependency-ready rounds, re-planning when a step asks for it."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Mapping

from src.agents.prompts import WORKER_OUTPUT_INSTRUCTIONS
from src.agents.registry import AgentRegistry
from src.core.config.models import OrchestratorSettings
from src.core.contracts.agent import AgentOutput
from src.core.contracts.orchestrator import ContextMessage, ExecutionResult, ExecutionStatus, WorkflowPlan
from src.core.exceptions import ReplanError, StepExecutionError
from src.core.observability import Stopwatch, log_event, new_operation_id, preview
from src.llm.structured import GenerationOptions, StructuredGenerator
from src.orchestrator.compiler import context_message
from src.orchestrator.planner import PlanGenerator

log = logging.getLogger("executor")

CANCELLED: Any = object()


@dataclass
class StepOutcome:
    step_index: int
    agent: str
    output: AgentOutput | None
    error: StepExecutionError | None
    latency_ms: int


def ready_steps(plan: WorkflowPlan, completed: Mapping[int, AgentOutput]) -> list[int]:
    """Indices not yet completed whose dependencies are all completed."""
    return [
        i
        for i, step in enumerate(plan.steps)
        if i not in completed and all(dep in completed for dep in step.depends_on)
    ]


def build_worker_prompt(initial_request: str, plan: WorkflowPlan, step_index: int, completed: Mapping[int, AgentOutput]) -> str:
    step = plan.steps[step_index]
    prompt = f'Initial Request: "{initial_request}"\n'
    if step.depends_on:
        prompt += "\nRelevant previous step results:\n"
        for dep in step.depends_on:
            if dep in completed:
                prompt += f"--- Output from Step {dep} ({plan.steps[dep].agent}) ---\n{completed[dep].result}\n\n"
    return f"{prompt}\n\nYour Task: {step.task}"


async def unless_cancelled(aw: Awaitable[Any], cancel_event: asyncio.Event | None) -> Any:
    """Await `aw`, or cancel it and return CANCELLED as soon as `cancel_event` is set."""
    fut = asyncio.ensure_future(aw)
    if cancel_event is None:
        return await fut
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({fut, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        fut.cancel()
        raise
    finally:
        waiter.cancel()
    if fut in done:
        return fut.result()
    fut.cancel()
    await asyncio.wait({fut})
    return CANCELLED


class PlanExecutor:
    """Round-based scheduler over one plan generation at a time.

    Each run owns its (plan, completed) pair; a re-plan swaps in a fresh pair
    and never edits the old one.
    """

    def __init__(
        self,
        generator: StructuredGenerator,
        registry: AgentRegistry,
        planner: PlanGenerator,
        settings: OrchestratorSettings,
    ):
        self._generator = generator
        self._registry = registry
        self._planner = planner
        self._settings = settings

    async def run_step(
        self,
        plan: WorkflowPlan,
        step_index: int,
        completed: Mapping[int, AgentOutput],
        initial_request: str,
        operation_id: str,
    ) -> StepOutcome:
        step = plan.steps[step_index]
        thresholds = self._settings.thresholds
        timeout = self._settings.step_timeout_seconds
        log_event(log, f"Executing step {step_index}", operation="execute_step_start", operation_id=operation_id,
                  thresholds=thresholds, step=step_index, agent=step.agent, task=preview(step.task))
        sw = Stopwatch()
        try:
            config = self._registry.get_config(step.agent)
            if config is None:
                raise StepExecutionError(step_index, step.agent, "agent configuration not found")
            system = f"{config.system_prompt}\n\n{WORKER_OUTPUT_INSTRUCTIONS}"
            prompt = build_worker_prompt(initial_request, plan, step_index, completed)
            log.debug("step %s %s prompt=%s", step_index, operation_id, prompt)
            options = GenerationOptions(
                model=config.model,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                retries=self._settings.worker_retries,
            )
            output = await asyncio.wait_for(self._generator.generate(system, prompt, AgentOutput, options), timeout=timeout)
        except StepExecutionError as e:
            error = e
        except asyncio.TimeoutError:
            error = StepExecutionError(step_index, step.agent, f"timed out after {timeout}s")
        except Exception as e:
            error = StepExecutionError(step_index, step.agent, str(e) or type(e).__name__)
        else:
            latency_ms = sw.elapsed_ms
            log_event(log, f"Step {step_index} ({step.agent}) completed", operation="execute_step_success",
                      operation_id=operation_id, thresholds=thresholds, duration_ms=latency_ms, step=step_index,
                      agent=step.agent, needs_revision=output.needs_revision, result=preview(output.result, 150))
            return StepOutcome(step_index, step.agent, output, None, latency_ms)
        latency_ms = sw.elapsed_ms
        log_event(log, f"Step {step_index} ({step.agent}) failed", operation="execute_step_error", operation_id=operation_id,
                  thresholds=thresholds, duration_ms=latency_ms, level=logging.ERROR, step=step_index, agent=step.agent,
                  error=error.reason, important=True)
        return StepOutcome(step_index, step.agent, None, error, latency_ms)

    async def _run_round(
        self,
        plan: WorkflowPlan,
        ready: list[int],
        completed: Mapping[int, AgentOutput],
        initial_request: str,
        operation_id: str,
    ) -> list[StepOutcome]:
        limit = self._settings.max_concurrent_steps
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def run(i: int) -> StepOutcome:
            if semaphore is None:
                return await self.run_step(plan, i, completed, initial_request, operation_id)
            async with semaphore:
                return await self.run_step(plan, i, completed, initial_request, operation_id)

        outcomes = await asyncio.gather(*(run(i) for i in ready))
        return sorted(outcomes, key=lambda o: o.step_index)

    async def execute_plan(
        self,
        plan: WorkflowPlan,
        initial_request: str,
        cancel_event: asyncio.Event | None = None,
        operation_id: str | None = None,
    ) -> ExecutionResult:
        op = operation_id or new_operation_id("exec_ctx")
        thresholds = self._settings.thresholds
        sw = Stopwatch()
        log_event(log, "Executing workflow plan", operation="execute_plan_start", operation_id=op,
                  thresholds=thresholds, step_count=len(plan.steps), max_iterations=plan.max_iterations)

        current_plan = plan
        completed: dict[int, AgentOutput] = {}
        messages: list[ContextMessage] = []
        iteration = 0
        rounds = 0
        replans = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                status = ExecutionStatus.CANCELLED
                break
            rounds += 1
            round_sw = Stopwatch()
            ready = ready_steps(current_plan, completed)
            log.info("Iteration %s/%s (%s): ready steps %s", iteration + 1, current_plan.max_iterations, op, ready)

            outcomes = await unless_cancelled(
                self._run_round(current_plan, ready, completed, initial_request, op), cancel_event
            )
            if outcomes is CANCELLED:
                status = ExecutionStatus.CANCELLED
                break

            round_completed = dict(completed)
            round_messages = list(messages)
            progressed: list[int] = []
            for outcome in outcomes:
                if outcome.output is None:
                    continue
                round_completed[outcome.step_index] = outcome.output
                round_messages.append(context_message(op, outcome.step_index, outcome.agent, outcome.output))
                progressed.append(outcome.step_index)
            completed, messages = round_completed, round_messages

            replanned = False
            flagged = next((i for i in progressed if completed[i].needs_revision), None)
            if flagged is not None:
                log_event(log, f"Step {flagged} flagged for revision, re-planning", operation="replan_start",
                          operation_id=op, thresholds=thresholds, level=logging.WARNING, step=flagged,
                          agent=current_plan.steps[flagged].agent, issues=completed[flagged].metadata.issues, important=True)
                try:
                    revised = await unless_cancelled(
                        self._planner.replan(initial_request, current_plan, flagged, completed[flagged], op), cancel_event
                    )
                except ReplanError as e:
                    log.warning("Re-plan abandoned for iteration %s (%s): %s", iteration + 1, op, e)
                else:
                    if revised is CANCELLED:
                        status = ExecutionStatus.CANCELLED
                        break
                    current_plan, completed, messages = revised, {}, []
                    replans += 1
                    replanned = True
                    log.warning("Workflow plan replaced (%s): %s; context reset", op, revised.agent_sequence)

            if not replanned:
                if all(i in completed for i in range(len(current_plan.steps))):
                    status = ExecutionStatus.COMPLETE
                    break
                if not progressed:
                    log_event(log, "No progress made, aborting", operation="execute_plan_deadlock", operation_id=op,
                              thresholds=thresholds, level=logging.WARNING, iteration=iteration + 1,
                              pending=[i for i in range(len(current_plan.steps)) if i not in completed], important=True)
                    status = ExecutionStatus.DEADLOCK
                    break

            log_event(log, f"Finished iteration {iteration + 1}", operation="execute_plan_iteration", operation_id=op,
                      thresholds=thresholds, duration_ms=round_sw.elapsed_ms, progressed=progressed, replanned=replanned)
            iteration += 1
            if iteration >= current_plan.max_iterations:
                log_event(log, f"Max iterations ({current_plan.max_iterations}) reached", operation="execute_plan_budget",
                          operation_id=op, thresholds=thresholds, level=logging.WARNING, important=True)
                status = ExecutionStatus.BUDGET_EXHAUSTED
                break

        log_event(log, "Finished workflow plan execution", operation="execute_plan_finish", operation_id=op,
                  thresholds=thresholds, duration_ms=sw.elapsed_ms, status=status.value, rounds=rounds, replans=replans,
                  completed=len(completed), context_message_count=len(messages))
        return ExecutionResult(
            completed=completed,
            final_plan=current_plan,
            context_messages=messages,
            status=status,
            iterations=rounds,
            replans=replans,
        )
