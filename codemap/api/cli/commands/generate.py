"""Generate command module - produces a codemap for one question."""

import argparse
import json
import sys

from loguru import logger

from codemap.core.config.config import Config
from codemap.prompts.template_engine import PromptTemplateEngine
from codemap.session.controller import GenerationSessionController
from codemap.storage.codemap_storage import JsonCodemapStore

from ..utils import ConsoleConsumer, create_llm_manager, render_codemap_text


async def generate_command(args: argparse.Namespace, config: Config) -> None:
    """Execute the generate command.

    Args:
        args: Parsed command-line arguments
        config: Pre-validated configuration instance
    """
    try:
        llm_manager = create_llm_manager(config)
    except ValueError as e:
        print(f"LLM provider setup failed: {e}", file=sys.stderr)
        sys.exit(1)

    consumer = ConsoleConsumer(verbose=args.verbose)
    controller = GenerationSessionController(
        llm_manager,
        PromptTemplateEngine(),
        JsonCodemapStore(config.generation.storage_dir),
        config=config.generation,
        consumer=consumer,
    )

    try:
        started = await controller.submit(args.query, args.mode, args.workspace)
    finally:
        controller.close()

    state = controller.state()
    failed = any(entry.role == "error" for entry in state.messages)
    if not started or state.codemap is None:
        if llm_manager is None:
            print(
                "Configure a model via:\n"
                "1. Set CODEMAP_LLM_API_KEY environment variable, OR\n"
                "2. Set OPENAI_API_KEY environment variable",
                file=sys.stderr,
            )
        sys.exit(1)

    if args.json:
        print(json.dumps(state.codemap.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(render_codemap_text(state.codemap))

    for entry in state.messages:
        if entry.content.startswith("Codemap saved to:"):
            print(f"\n{entry.content}", file=sys.stderr)

    if failed:
        logger.warning("Codemap generated with errors; see messages above")
    if llm_manager is not None:
        logger.debug(f"LLM usage: {llm_manager.get_usage_stats()}")
