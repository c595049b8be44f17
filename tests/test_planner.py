import pytest

from src.core.contracts.orchestrator import PlanKind, WorkflowPlan
from src.core.exceptions import (
    EmptyPlan,
    GenerationError,
    InvalidAgentType,
    InvalidDependency,
    PlanGenerationError,
    PlanValidationError,
    ReplanError,
)
from src.orchestrator.planner import PlanGenerator, classify_plan, is_simple_default_plan, validate_plan
from tests.fakes import ScriptedGenerator, make_output, make_plan


def test_validate_accepts_dag(registry):
    validate_plan(make_plan(("researcher", "a"), ("copywriting", "b", [0]), ("copyeditor", "c", [0, 1])), registry)


def test_validate_rejects_empty_plan(registry):
    with pytest.raises(EmptyPlan):
        validate_plan(WorkflowPlan(steps=[]), registry)


def test_validate_reports_first_unknown_agent(registry):
    with pytest.raises(InvalidAgentType) as exc:
        validate_plan(make_plan(("copywriting", "a"), ("ghost", "b"), ("phantom", "c")), registry)
    assert exc.value.agent_type == "ghost"
    assert exc.value.step_index == 1


def test_unknown_agent_checked_before_dependencies(registry):
    with pytest.raises(InvalidAgentType):
        validate_plan(make_plan(("copywriting", "a", [7]), ("ghost", "b")), registry)


@pytest.mark.parametrize(
    "steps",
    [
        [("copywriting", "a", [3])],
        [("copywriting", "a", [-1])],
        [("copywriting", "a", [0])],
        [("copywriting", "a", [1]), ("copyeditor", "b", [0])],
        [("copywriting", "a", [2]), ("copyeditor", "b", [0]), ("researcher", "c", [1])],
    ],
    ids=["out-of-range", "negative", "self", "two-cycle", "three-cycle"],
)
def test_validate_rejects_bad_dependencies(registry, steps):
    with pytest.raises(InvalidDependency):
        validate_plan(make_plan(*steps), registry)


def test_validation_errors_are_plan_generation_errors():
    assert issubclass(InvalidDependency, PlanValidationError)
    assert issubclass(PlanValidationError, PlanGenerationError)


def test_classify_plan():
    assert classify_plan(make_plan(("default", "x"))) is PlanKind.SIMPLE
    assert classify_plan(make_plan(("copywriting", "x"))) is PlanKind.SIMPLE
    assert classify_plan(make_plan(("copywriting", "x"), ("copyeditor", "y", [0]))) is PlanKind.COMPLEX


def test_simple_default_plan_requires_default_agent():
    assert is_simple_default_plan(make_plan(("default", "x")), "default")
    assert not is_simple_default_plan(make_plan(("copywriting", "x")), "default")


@pytest.mark.asyncio
async def test_generate_plan_uses_planner_settings(registry, settings):
    gen = ScriptedGenerator(plans=[make_plan(("copywriting", "Write"))])
    plan = await PlanGenerator(gen, registry, settings).generate_plan("write an ad", agent_hint="copywriting")

    assert plan.agent_sequence == ["copywriting"]
    call = gen.calls[0]
    assert call.options.model == settings.planner_model
    assert call.options.temperature == settings.planner_temperature
    assert call.options.retries == settings.plan_retries
    assert 'User Request: "write an ad"' in call.user_prompt
    assert "User Agent Hint: copywriting" in call.user_prompt
    assert "copyeditor" in call.system_prompt


@pytest.mark.asyncio
async def test_unknown_hint_is_ignored(registry, settings):
    gen = ScriptedGenerator(plans=[make_plan(("default", "Answer"))])
    await PlanGenerator(gen, registry, settings).generate_plan("hi", agent_hint="ghost")
    assert "User Agent Hint: default" in gen.calls[0].user_prompt


@pytest.mark.asyncio
async def test_max_iterations_clamped_to_cap(registry, settings):
    gen = ScriptedGenerator(plans=[make_plan(("default", "x"), max_iterations=50)])
    plan = await PlanGenerator(gen, registry, settings).generate_plan("hi")
    assert plan.max_iterations == settings.max_iterations_cap


@pytest.mark.asyncio
async def test_invalid_plan_propagates_validation_error(registry, settings):
    gen = ScriptedGenerator(plans=[make_plan(("ghost", "x"))])
    with pytest.raises(InvalidAgentType):
        await PlanGenerator(gen, registry, settings).generate_plan("hi")


@pytest.mark.asyncio
async def test_generation_failure_becomes_plan_generation_error(registry, settings):
    gen = ScriptedGenerator(plans=[GenerationError("rate limited")])
    with pytest.raises(PlanGenerationError) as exc:
        await PlanGenerator(gen, registry, settings).generate_plan("hi")
    assert not isinstance(exc.value, PlanValidationError)


@pytest.mark.asyncio
async def test_replan_prompt_and_options(registry, settings):
    gen = ScriptedGenerator(plans=[make_plan(("copyeditor", "Fix"))])
    plan = make_plan(("copywriting", "Draft"))
    output = make_output("x" * 500, needs_revision=True, issues=["too long", "off brand"])

    revised = await PlanGenerator(gen, registry, settings).replan("sell cameras", plan, 0, output)

    assert revised.agent_sequence == ["copyeditor"]
    call = gen.calls[0]
    assert call.options.retries == settings.replan_retries
    assert "Issues: too long, off brand" in call.user_prompt
    assert "x" * 200 + "…" in call.user_prompt
    assert "x" * 201 not in call.user_prompt
    assert '["copywriting"]' in call.user_prompt
    assert 'goal: "sell cameras"' in call.user_prompt


@pytest.mark.asyncio
@pytest.mark.parametrize("scripted", [GenerationError("down"), make_plan(("copywriting", "a", [0]))])
async def test_replan_failures_become_replan_error(registry, settings, scripted):
    gen = ScriptedGenerator(plans=[scripted])
    with pytest.raises(ReplanError):
        await PlanGenerator(gen, registry, settings).replan("req", make_plan(("copywriting", "a")), 0, make_output("r", True))
