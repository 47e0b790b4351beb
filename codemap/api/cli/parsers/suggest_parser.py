"""Suggest command argument parser for codemap CLI."""

import argparse
from typing import Any

from .common_arguments import add_common_arguments, add_config_arguments


def add_suggest_subparser(subparsers: Any) -> argparse.ArgumentParser:
    """Add suggest command subparser to the main parser."""
    suggest_parser = subparsers.add_parser(
        "suggest",
        help="Suggest codemap questions from a list of recently touched files",
        description=(
            "Treat the given files as recent activity (later arguments count as "
            "more recent) and ask the model for codemap questions worth exploring."
        ),
    )

    suggest_parser.add_argument(
        "files",
        nargs="+",
        metavar="FILE",
        help="Recently touched file paths",
    )

    add_common_arguments(suggest_parser)
    add_config_arguments(suggest_parser, ["llm"])

    return suggest_parser
