import pytest

from src.core.contracts.orchestrator import ExecutionStatus, WorkflowPlan
from src.core.exceptions import EmptyPlan
from src.orchestrator.compiler import compile_context
from tests.fakes import make_output, make_plan


def test_messages_follow_step_order(registry):
    plan = make_plan(("researcher", "a"), ("copywriting", "b"), ("copyeditor", "c", [0, 1]))
    completed = {2: make_output("edited"), 0: make_output("facts"), 1: make_output("copy")}

    ctx = compile_context(completed, plan, ExecutionStatus.COMPLETE, registry, "op")

    assert [m.step_index for m in ctx.context_messages] == [0, 1, 2]
    assert ctx.context_messages[0].content == "Context from researcher: facts"
    assert ctx.context_messages[0].id == "ctx_op_0"
    assert all(m.role == "assistant" for m in ctx.context_messages)
    assert ctx.plan_summary == ["researcher", "copywriting", "copyeditor"]
    assert ctx.final_system_prompt is None


def test_complete_run_targets_last_step_model(registry):
    plan = make_plan(("default", "a"), ("copywriting", "b", [0]))
    ctx = compile_context({0: make_output("a"), 1: make_output("b")}, plan, ExecutionStatus.COMPLETE, registry, "op")
    assert ctx.target_model_id == "gpt-4o"


@pytest.mark.parametrize("status", [ExecutionStatus.DEADLOCK, ExecutionStatus.BUDGET_EXHAUSTED])
def test_incomplete_run_targets_default_model(registry, status):
    plan = make_plan(("copywriting", "a"), ("copyeditor", "b", [0]))
    ctx = compile_context({0: make_output("a")}, plan, status, registry, "op")
    assert ctx.target_model_id == "gpt-4o-mini"
    assert [m.agent for m in ctx.context_messages] == ["copywriting"]


def test_empty_plan_rejected(registry):
    with pytest.raises(EmptyPlan):
        compile_context({}, WorkflowPlan(steps=[]), ExecutionStatus.COMPLETE, registry, "op")
