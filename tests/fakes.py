"""Deterministic stand-in for the structured generation service."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from src.core.contracts.agent import AgentOutput, AgentOutputMetadata
from src.core.contracts.orchestrator import WorkflowPlan, WorkflowStep
from src.core.exceptions import GenerationError
from src.llm.structured import GenerationOptions


def make_plan(*steps: tuple, max_iterations: int = 5) -> WorkflowPlan:
    """make_plan(("copywriting", "Write copy"), ("copyeditor", "Edit", [0]))"""
    return WorkflowPlan(
        steps=[WorkflowStep(agent=s[0], task=s[1], depends_on=list(s[2]) if len(s) > 2 else []) for s in steps],
        max_iterations=max_iterations,
    )


def make_output(result: str, needs_revision: bool = False, issues: list[str] | None = None) -> AgentOutput:
    return AgentOutput(result=result, metadata=AgentOutputMetadata(needs_revision=needs_revision, issues=issues))


@dataclass
class Call:
    schema: str
    system_prompt: str
    user_prompt: str
    options: GenerationOptions


class ScriptedGenerator:
    """Plans are served in order from `plans`; step outputs are looked up by task text.

    A scripted item may be a model instance, an exception (raised), a list (one
    item per call) or an async callable taking the user prompt.
    """

    def __init__(self, plans: list[Any] | None = None, steps: dict[str, Any] | None = None, delay: float = 0.0):
        self.plans = list(plans or [])
        self.steps = dict(steps or {})
        self.delay = delay
        self.calls: list[Call] = []
        self.active = 0
        self.max_active = 0

    def calls_for(self, schema: type) -> list[Call]:
        return [c for c in self.calls if c.schema == schema.__name__]

    async def generate(self, system_prompt, user_prompt, schema, options):
        self.calls.append(Call(schema.__name__, system_prompt, user_prompt, options))
        if schema is WorkflowPlan:
            if not self.plans:
                raise GenerationError("no scripted plan left")
            item = self.plans.pop(0)
        else:
            task = user_prompt.rsplit("Your Task: ", 1)[-1]
            if task not in self.steps:
                raise GenerationError(f"no scripted output for task {task!r}")
            item = self.steps[task]
            if isinstance(item, list):
                item = item.pop(0) if len(item) > 1 else item[0]
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if isinstance(item, BaseException):
                raise item
            if callable(item):
                return await item(user_prompt)
            return item
        finally:
            self.active -= 1
