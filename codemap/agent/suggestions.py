"""Suggestion agent: propose codemap questions from recent file activity."""

from __future__ import annotations

from loguru import logger

from codemap.agent.schemas import ParseFailure, decode_suggestions
from codemap.core.config.generation_config import GenerationConfig
from codemap.core.models import Suggestion
from codemap.llm_manager import LLMManager
from codemap.prompts.template_engine import PromptTemplateEngine, TemplateError


def format_recent_files(recent_files: list[str]) -> str:
    return "\n".join(f"{idx}. {path}" for idx, path in enumerate(recent_files, start=1))


async def generate_suggestions(
    llm_manager: LLMManager | None,
    templates: PromptTemplateEngine,
    recent_files: list[str],
    config: GenerationConfig | None = None,
) -> list[Suggestion]:
    """Ask the model for follow-up questions about ``recent_files``.

    Never raises: an unconfigured client or any failure yields ``[]``.
    """
    if llm_manager is None or not llm_manager.is_configured():
        return []
    config = config or GenerationConfig()

    try:
        system_prompt = templates.load("suggestion", "system")
        user_prompt = templates.load(
            "suggestion", "user", {"recent_files": format_recent_files(recent_files)}
        )
        response = await llm_manager.get_provider().complete(
            user_prompt,
            system=system_prompt,
            max_completion_tokens=config.suggestion_max_tokens,
        )
        payloads = decode_suggestions(response.content)
    except (TemplateError, ParseFailure, RuntimeError, TimeoutError, ValueError) as exc:
        logger.warning(f"Failed to generate suggestions: {exc}")
        return []

    suggestions = [
        Suggestion(id=payload.id or f"suggestion-{idx}", text=payload.text)
        for idx, payload in enumerate(payloads)
    ]
    logger.debug(f"Generated {len(suggestions)} suggestion(s)")
    return suggestions
