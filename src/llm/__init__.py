from src.llm.structured import GenerationOptions, LangChainStructuredGenerator, StructuredGenerator

__all__ = ["GenerationOptions", "LangChainStructuredGenerator", "StructuredGenerator"]
