"""Shared utilities for codemap CLI commands."""

from .console import ConsoleConsumer, render_codemap_text
from .llm import create_llm_manager

__all__ = [
    "ConsoleConsumer",
    "create_llm_manager",
    "render_codemap_text",
]
