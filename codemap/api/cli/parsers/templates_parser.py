"""Templates command argument parser for codemap CLI."""

import argparse
from pathlib import Path
from typing import Any

from .common_arguments import add_common_arguments


def add_templates_subparser(subparsers: Any) -> argparse.ArgumentParser:
    """Add templates command subparser (currently only ``check``)."""
    templates_parser = subparsers.add_parser(
        "templates",
        help="Inspect prompt templates",
    )
    template_actions = templates_parser.add_subparsers(
        dest="templates_action", metavar="ACTION", required=True
    )

    check_parser = template_actions.add_parser(
        "check",
        help="Load every prompt template and report missing ones",
    )
    check_parser.add_argument(
        "--templates-root",
        type=Path,
        default=None,
        help="Directory of templates to check instead of the bundled ones",
    )
    add_common_arguments(check_parser)

    return templates_parser
