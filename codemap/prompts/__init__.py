"""Prompt templates and the engine that fills them."""

from .template_engine import (
    InvalidStageError,
    PromptTemplateEngine,
    TemplateError,
    TemplateNotFoundError,
)

__all__ = [
    "InvalidStageError",
    "PromptTemplateEngine",
    "TemplateError",
    "TemplateNotFoundError",
]
