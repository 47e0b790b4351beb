"""Generate command argument parser for codemap CLI."""

import argparse
from pathlib import Path
from typing import Any

from codemap.core.models import CODEMAP_MODES

from .common_arguments import add_common_arguments, add_config_arguments


def add_generate_subparser(subparsers: Any) -> argparse.ArgumentParser:
    """Add generate command subparser to the main parser.

    Args:
        subparsers: Subparsers object from the main argument parser

    Returns:
        The configured generate subparser
    """
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate a codemap for a question about a codebase",
        description=(
            "Drive the language model through the workspace to answer a question "
            "with a codemap: traces of source locations plus a diagram per trace. "
            "The result is saved to the storage directory."
        ),
    )

    generate_parser.add_argument(
        "query",
        help="Question to answer, e.g. 'How does login work?'",
    )

    generate_parser.add_argument(
        "--mode",
        choices=CODEMAP_MODES,
        default=None,
        help=(
            "fast: one conversation returns the whole codemap. "
            "smart: staged discovery, structuring and per-trace deep dives. "
            "Defaults to CODEMAP_DEFAULT_MODE (smart)."
        ),
    )

    generate_parser.add_argument(
        "--workspace",
        type=Path,
        default=Path("."),
        help="Workspace root the model may explore (default: current directory)",
    )

    generate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the finished codemap as JSON instead of a text outline",
    )

    add_common_arguments(generate_parser)
    add_config_arguments(generate_parser, ["llm", "generation"])

    return generate_parser
