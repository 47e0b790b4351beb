"""Templates command module - verify prompt templates load."""

import argparse
import sys

from codemap.core.config.config import Config
from codemap.prompts.template_engine import PromptTemplateEngine


async def templates_command(args: argparse.Namespace, config: Config) -> None:
    """Execute a templates subcommand."""
    del config
    engine = PromptTemplateEngine(args.templates_root)
    loaded = engine.preload()
    expected = engine.template_paths()

    cached = {f"{family}/{name}.md" for family, name in engine.cached_keys}
    missing = [path for path in expected if path not in cached]

    print(f"Loaded {loaded}/{len(expected)} prompt templates")
    for path in missing:
        print(f"  missing: {path}")
    if missing:
        sys.exit(1)
