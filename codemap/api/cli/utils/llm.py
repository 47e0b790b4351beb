"""LLM manager construction for CLI commands."""

from __future__ import annotations

from loguru import logger

from codemap.core.config.config import Config
from codemap.llm_manager import LLMManager


def create_llm_manager(config: Config) -> LLMManager | None:
    """Build an LLMManager from config, or None when no API key is configured.

    Raises:
        ValueError: provider configuration is present but invalid
    """
    if not config.llm.is_provider_configured():
        missing = ", ".join(config.llm.get_missing_config())
        logger.debug(f"LLM provider not configured (missing: {missing})")
        return None
    return LLMManager(config.llm.get_provider_config())
