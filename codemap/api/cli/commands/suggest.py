"""Suggest command module - proposes questions from recent file activity."""

import argparse
import sys

from codemap.core.config.config import Config
from codemap.prompts.template_engine import PromptTemplateEngine
from codemap.session.controller import GenerationSessionController
from codemap.storage.codemap_storage import JsonCodemapStore

from ..utils import ConsoleConsumer, create_llm_manager


async def suggest_command(args: argparse.Namespace, config: Config) -> None:
    """Execute the suggest command."""
    llm_manager = create_llm_manager(config)
    if llm_manager is None:
        print("No language model configured; cannot suggest.", file=sys.stderr)
        sys.exit(1)

    controller = GenerationSessionController(
        llm_manager,
        PromptTemplateEngine(),
        JsonCodemapStore(config.generation.storage_dir),
        config=config.generation,
        consumer=ConsoleConsumer(verbose=args.verbose),
    )
    try:
        for path in args.files:
            controller.recent_files.touch(path)
        minimum = config.generation.min_suggestion_files
        if len(controller.recent_files) < minimum:
            print(f"Need at least {minimum} distinct files to suggest.", file=sys.stderr)
            sys.exit(1)
        suggestions = await controller.refresh_suggestions()
    finally:
        controller.close()

    if not suggestions:
        print("No suggestions.", file=sys.stderr)
        return
    for suggestion in suggestions:
        print(f"- {suggestion.text}")
