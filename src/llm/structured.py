"""Schema-validated LLM calls: one `generate` capability, one LangChain implementation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol, TypeVar

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ValidationError

from src.core.exceptions import GenerationError

log = logging.getLogger("llm")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass(frozen=True)
class GenerationOptions:
    model: str
    temperature: float | None = None
    max_tokens: int | None = None
    retries: int = 0
    backoff: bool = True  # exponential jitter between retries


class StructuredGenerator(Protocol):
    """Returns an instance of `schema` built from the model's answer, or raises GenerationError."""

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: type[SchemaT],
        options: GenerationOptions,
    ) -> SchemaT:  # pragma: no cover - interface
        ...


def openai_chat_model(options: GenerationOptions) -> Any:
    kwargs: dict[str, Any] = {"model": options.model}
    if options.temperature is not None:
        kwargs["temperature"] = options.temperature
    if options.max_tokens is not None:
        kwargs["max_tokens"] = options.max_tokens
    return ChatOpenAI(**kwargs)


class LangChainStructuredGenerator:
    def __init__(self, llm_factory: Callable[[GenerationOptions], Any] | None = None):
        self._llm_factory = llm_factory or openai_chat_model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: type[SchemaT],
        options: GenerationOptions,
    ) -> SchemaT:
        llm = self._llm_factory(options)
        runnable = llm.with_structured_output(schema, method="function_calling")
        if options.retries > 0:
            runnable = runnable.with_retry(
                stop_after_attempt=options.retries + 1,
                wait_exponential_jitter=options.backoff,
            )
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
        try:
            out = await runnable.ainvoke(messages)
        except Exception as e:
            log.warning("%s generation failed on %s: %s", schema.__name__, options.model, e)
            raise GenerationError(f"{schema.__name__} generation failed: {e}") from e
        if out is None:
            raise GenerationError(f"{schema.__name__} generation returned nothing")
        if isinstance(out, schema):
            return out
        try:
            return schema.model_validate(out)
        except ValidationError as e:
            raise GenerationError(f"{schema.__name__} output did not match schema: {e}") from e
