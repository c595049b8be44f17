from unittest.mock import MagicMock

import pytest
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import RunnableLambda

from src.core.contracts.agent import AgentOutput
from src.core.exceptions import GenerationError
from src.llm.structured import GenerationOptions, LangChainStructuredGenerator
from tests.fakes import make_output


def factory_returning(fn, seen_options=None):
    def factory(options):
        if seen_options is not None:
            seen_options.append(options)
        llm = MagicMock()
        llm.with_structured_output.return_value = RunnableLambda(fn)
        return llm
    return factory


OPTIONS = GenerationOptions(model="gpt-4o", temperature=0.2)


@pytest.mark.asyncio
async def test_returns_schema_instance_and_sends_messages():
    received = []

    def answer(messages):
        received.extend(messages)
        return make_output("ok")

    seen = []
    gen = LangChainStructuredGenerator(factory_returning(answer, seen))
    out = await gen.generate("sys", "user", AgentOutput, OPTIONS)

    assert out.result == "ok"
    assert seen == [OPTIONS]
    assert isinstance(received[0], SystemMessage) and received[0].content == "sys"
    assert isinstance(received[1], HumanMessage) and received[1].content == "user"


@pytest.mark.asyncio
async def test_dict_output_is_validated():
    gen = LangChainStructuredGenerator(factory_returning(lambda _: {"result": "r", "metadata": {"needs_revision": True}}))
    out = await gen.generate("s", "u", AgentOutput, OPTIONS)
    assert out.needs_revision is True


@pytest.mark.asyncio
async def test_schema_mismatch_raises():
    gen = LangChainStructuredGenerator(factory_returning(lambda _: {"metadata": {}}))
    with pytest.raises(GenerationError):
        await gen.generate("s", "u", AgentOutput, OPTIONS)


@pytest.mark.asyncio
async def test_empty_output_raises():
    gen = LangChainStructuredGenerator(factory_returning(lambda _: None))
    with pytest.raises(GenerationError):
        await gen.generate("s", "u", AgentOutput, OPTIONS)


@pytest.mark.asyncio
async def test_provider_error_wrapped():
    def fail(_):
        raise RuntimeError("rate limit")

    gen = LangChainStructuredGenerator(factory_returning(fail))
    with pytest.raises(GenerationError, match="rate limit"):
        await gen.generate("s", "u", AgentOutput, OPTIONS)


@pytest.mark.asyncio
async def test_retries_until_success():
    attempts = []

    def flaky(_):
        attempts.append(1)
        if len(attempts) < 2:
            raise RuntimeError("transient")
        return make_output("second time")

    gen = LangChainStructuredGenerator(factory_returning(flaky))
    options = GenerationOptions(model="gpt-4o", retries=1, backoff=False)
    out = await gen.generate("s", "u", AgentOutput, options)

    assert out.result == "second time"
    assert len(attempts) == 2
