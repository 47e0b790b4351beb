"""Configuration models for codemap."""

from .config import Config
from .generation_config import GenerationConfig
from .llm_config import DEFAULT_LLM_MODEL, LLMConfig

__all__ = ["Config", "DEFAULT_LLM_MODEL", "GenerationConfig", "LLMConfig"]
