"""History command module - list, show and delete saved codemaps."""

import argparse
import json
import sys

from codemap.core.config.config import Config
from codemap.prompts.template_engine import PromptTemplateEngine
from codemap.session.controller import GenerationSessionController
from codemap.storage.codemap_storage import JsonCodemapStore

from ..utils import ConsoleConsumer, create_llm_manager, render_codemap_text


async def history_command(args: argparse.Namespace, config: Config) -> None:
    """Execute a history subcommand."""
    store = JsonCodemapStore(config.generation.storage_dir)
    controller = GenerationSessionController(
        create_llm_manager(config),
        PromptTemplateEngine(),
        store,
        config=config.generation,
        consumer=ConsoleConsumer(verbose=args.verbose),
    )

    try:
        if args.history_action == "list":
            stored = controller.history()
            if not stored:
                print(f"No saved codemaps in {store.directory}", file=sys.stderr)
                return
            for item in stored:
                saved_at = item.codemap.saved_at or "unknown"
                print(
                    f"{item.filename}\t{saved_at}\t"
                    f"{len(item.codemap.traces)} trace(s)\t{item.codemap.title}"
                )

        elif args.history_action == "show":
            if not await controller.load_history(args.name):
                sys.exit(1)
            codemap = controller.state().codemap
            if codemap is None:
                sys.exit(1)
            if args.json:
                print(json.dumps(codemap.to_dict(), indent=2, ensure_ascii=False))
            else:
                print(render_codemap_text(codemap))

        elif args.history_action == "delete":
            if not await controller.delete_history(args.name):
                sys.exit(1)
    finally:
        controller.close()
