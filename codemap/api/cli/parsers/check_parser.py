"""Check command argument parser for codemap CLI."""

import argparse
from typing import Any

from .common_arguments import add_common_arguments, add_config_arguments


def add_check_subparser(subparsers: Any) -> argparse.ArgumentParser:
    """Add check command subparser to the main parser."""
    check_parser = subparsers.add_parser(
        "check",
        help="Verify the configured language model is reachable",
    )
    add_common_arguments(check_parser)
    add_config_arguments(check_parser, ["llm"])

    return check_parser
