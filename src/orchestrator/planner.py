"""Generate, validate and revise WorkflowPlans with the structured generation service."""
from __future__ import annotations

import json
import logging

from src.agents.registry import AgentRegistry
from src.core.config.models import OrchestratorSettings
from src.core.contracts.agent import AgentOutput
from src.core.contracts.orchestrator import PlanKind, WorkflowPlan
from src.core.exceptions import (
    EmptyPlan,
    InvalidAgentType,
    InvalidDependency,
    PlanGenerationError,
    PlanValidationError,
    ReplanError,
)
from src.core.observability import Stopwatch, log_event, new_operation_id, preview
from src.llm.structured import GenerationOptions, StructuredGenerator

log = logging.getLogger("planner")

SIMPLE_TASK = "Answer the user query directly using available context and tools."

# Only {default_agent}, {simple_task} and {agents} are format fields.
SYSTEM = """You are a highly intelligent workflow manager. Your tasks are:
1. Analyze the user request and any user agent hint provided.
2. Determine if the request is SIMPLE (can be answered directly by the '{default_agent}' agent, possibly using RAG/tools) or COMPLEX (requires specialized generation or multiple distinct steps).
3. Generate a workflow plan object based on your determination:
    - If SIMPLE (answering questions, researching topics, summarizing info, using tools directly): create a plan with ONLY ONE step using the '{default_agent}' agent (or the user's hinted agent if appropriate) with the task: "{simple_task}"
    - If COMPLEX (the user explicitly asks for marketing copy, ad campaigns, quizzes, or specific text editing): create a multi-step plan (typically 2-3 steps, max 5) using the most appropriate specialized agents.
        - Give every step an explicit task.
        - depends_on lists the 0-based indices of earlier steps whose output the step needs.
        - Use 'researcher' ONLY if significant information gathering is clearly needed as a distinct first step.
        - Use 'copyeditor' ONLY when the user asks for text to be edited or refined, or a previous step requires it.
        - Ensure the final step produces the user-facing output.
Available specialized agents: {agents}.
STRONGLY PREFER the single '{default_agent}' agent plan unless a specialized generation agent is clearly and explicitly requested by the user."""

PROMPT = """User Request: "{request}"
User Agent Hint: {hint}

Analyze this request and generate the appropriate workflow plan (either single-step simple or multi-step complex) based on your system instructions. Ensure the plan achieves the user's goal."""

REPLAN_SYSTEM = """You are the workflow manager. Adjust the workflow based on agent feedback. You can modify steps, add new steps (e.g., a copyeditor step), or re-order tasks. depends_on lists 0-based indices of earlier steps. Available agents: {agents}."""

REPLAN_PROMPT = """Step {index} ({agent}) requires revision. Issues: {issues}. Result: {result}
Current plan: {sequence}
Provide an updated plan (max 5 steps) to address the issue for the goal: "{request}\""""


def validate_plan(plan: WorkflowPlan, registry: AgentRegistry) -> None:
    """Raise a PlanValidationError subclass unless the plan is executable."""
    if not plan.steps:
        raise EmptyPlan("Generated workflow plan is empty.")
    for i, step in enumerate(plan.steps):
        if step.agent not in registry:
            raise InvalidAgentType(step.agent, i)
    n = len(plan.steps)
    for i, step in enumerate(plan.steps):
        for dep in step.depends_on:
            if dep == i:
                raise InvalidDependency(f"Step {i} depends on itself")
            if dep < 0 or dep >= n:
                raise InvalidDependency(f"Step {i} depends on unknown step {dep}")
    _check_acyclic(plan)


def _check_acyclic(plan: WorkflowPlan) -> None:
    state: dict[int, int] = {}  # 1 = visiting, 2 = done

    def visit(i: int, path: list[int]) -> None:
        state[i] = 1
        for dep in plan.steps[i].depends_on:
            if state.get(dep) == 1:
                cycle = path[path.index(dep):] + [dep]
                raise InvalidDependency(f"Dependency cycle between steps {cycle}")
            if dep not in state:
                visit(dep, path + [dep])
        state[i] = 2

    for i in range(len(plan.steps)):
        if i not in state:
            visit(i, [i])


def classify_plan(plan: WorkflowPlan) -> PlanKind:
    if len(plan.steps) == 1 and not plan.steps[0].depends_on:
        return PlanKind.SIMPLE
    return PlanKind.COMPLEX


def is_simple_default_plan(plan: WorkflowPlan, default_agent: str) -> bool:
    return classify_plan(plan) is PlanKind.SIMPLE and plan.steps[0].agent == default_agent


class PlanGenerator:
    def __init__(self, generator: StructuredGenerator, registry: AgentRegistry, settings: OrchestratorSettings):
        self._generator = generator
        self._registry = registry
        self._settings = settings

    def _options(self, retries: int) -> GenerationOptions:
        return GenerationOptions(
            model=self._settings.planner_model,
            temperature=self._settings.planner_temperature,
            retries=retries,
        )

    def _accept(self, plan: WorkflowPlan) -> WorkflowPlan:
        validate_plan(plan, self._registry)
        cap = self._settings.max_iterations_cap
        if plan.max_iterations > cap:
            plan = plan.model_copy(update={"max_iterations": cap})
        return plan

    def build_prompts(self, request: str, agent_hint: str | None = None) -> tuple[str, str]:
        system = SYSTEM.format(
            default_agent=self._registry.default_type,
            simple_task=SIMPLE_TASK,
            agents=", ".join(self._registry.specialized_types) or "none",
        )
        return system, PROMPT.format(request=request, hint=agent_hint or self._registry.default_type)

    async def generate_plan(self, request: str, agent_hint: str | None = None, operation_id: str | None = None) -> WorkflowPlan:
        op = operation_id or new_operation_id("plan")
        thresholds = self._settings.thresholds
        total = Stopwatch()
        if agent_hint is not None and agent_hint not in self._registry:
            log.warning("Ignoring unknown agent hint %r", agent_hint)
            agent_hint = None
        log_event(log, "Generating workflow plan", operation="generate_plan", operation_id=op, thresholds=thresholds,
                  request=preview(request), agent_hint=agent_hint)
        system, prompt = self.build_prompts(request, agent_hint)
        log.debug("generate_plan %s system=%s prompt=%s", op, system, prompt)
        try:
            llm = Stopwatch()
            plan = await self._generator.generate(system, prompt, WorkflowPlan, self._options(self._settings.plan_retries))
            log_event(log, "Plan generation call completed", operation="generate_plan_llm_call", operation_id=op,
                      thresholds=thresholds, duration_ms=llm.elapsed_ms)
            plan = self._accept(plan)
        except PlanValidationError as e:
            log_event(log, "Generated plan rejected", operation="generate_plan_error", operation_id=op, thresholds=thresholds,
                      duration_ms=total.elapsed_ms, level=logging.ERROR, error=str(e), important=True)
            raise
        except Exception as e:
            log_event(log, "Error generating workflow plan", operation="generate_plan_error", operation_id=op,
                      thresholds=thresholds, duration_ms=total.elapsed_ms, level=logging.ERROR, error=str(e), important=True)
            raise PlanGenerationError(f"Failed to generate workflow plan: {e}") from e
        log_event(log, "Workflow plan generation completed", operation="generate_plan_success", operation_id=op,
                  thresholds=thresholds, duration_ms=total.elapsed_ms, llm_duration_ms=llm.elapsed_ms,
                  step_count=len(plan.steps), plan=json.dumps(plan.agent_sequence), kind=classify_plan(plan).value)
        return plan

    async def replan(
        self,
        request: str,
        plan: WorkflowPlan,
        step_index: int,
        output: AgentOutput,
        operation_id: str | None = None,
    ) -> WorkflowPlan:
        """Ask for a replacement plan after a step flagged its own output. Every failure is a ReplanError."""
        op = operation_id or new_operation_id("replan")
        sw = Stopwatch()
        step = plan.steps[step_index]
        system = REPLAN_SYSTEM.format(agents=", ".join(self._registry.specialized_types) or "none")
        prompt = REPLAN_PROMPT.format(
            index=step_index,
            agent=step.agent,
            issues=", ".join(output.metadata.issues or []) or "None",
            result=preview(output.result, 200),
            sequence=json.dumps(plan.agent_sequence),
            request=request,
        )
        try:
            revised = await self._generator.generate(system, prompt, WorkflowPlan, self._options(self._settings.replan_retries))
            revised = self._accept(revised)
        except PlanValidationError as e:
            log_event(log, "Re-planning produced an invalid plan", operation="replan_error", operation_id=op,
                      thresholds=self._settings.thresholds, duration_ms=sw.elapsed_ms, level=logging.ERROR,
                      step=step_index, error=str(e), important=True)
            raise ReplanError(f"Re-planning generated an invalid plan: {e}") from e
        except Exception as e:
            log_event(log, "Re-planning failed", operation="replan_error", operation_id=op,
                      thresholds=self._settings.thresholds, duration_ms=sw.elapsed_ms, level=logging.ERROR,
                      step=step_index, error=str(e), important=True)
            raise ReplanError(f"Re-planning failed: {e}") from e
        log_event(log, "Re-planning successful", operation="replan_success", operation_id=op,
                  thresholds=self._settings.thresholds, duration_ms=sw.elapsed_ms, step=step_index,
                  new_step_count=len(revised.steps), plan=json.dumps(revised.agent_sequence))
        return revised
