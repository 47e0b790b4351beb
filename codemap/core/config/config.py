"""Top-level configuration bundle for codemap."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from codemap.core.config.generation_config import GenerationConfig
from codemap.core.config.llm_config import LLMConfig


class Config(BaseModel):
    """LLM and generation settings resolved from env, then CLI overrides."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)

    @classmethod
    def from_args(cls, args: Any | None = None) -> Config:
        """Build a config from the environment, applying CLI overrides if given."""
        if args is None:
            return cls()

        llm_overrides = LLMConfig.extract_cli_overrides(args)
        generation_overrides = GenerationConfig.extract_cli_overrides(args)
        return cls(
            llm=LLMConfig(**llm_overrides),
            generation=GenerationConfig(**generation_overrides),
        )
