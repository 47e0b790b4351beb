"""LLM providers for codemap generation."""

from .openai_llm_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
