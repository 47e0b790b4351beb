"""History command argument parser for codemap CLI."""

import argparse
from pathlib import Path
from typing import Any

from .common_arguments import add_common_arguments


def add_history_subparser(subparsers: Any) -> argparse.ArgumentParser:
    """Add history command subparser (list/show/delete saved codemaps)."""
    history_parser = subparsers.add_parser(
        "history",
        help="List, show or delete saved codemaps",
    )
    history_actions = history_parser.add_subparsers(
        dest="history_action", metavar="ACTION", required=True
    )

    list_parser = history_actions.add_parser("list", help="List saved codemaps")
    add_common_arguments(list_parser)

    show_parser = history_actions.add_parser("show", help="Print a saved codemap")
    show_parser.add_argument("name", help="Codemap filename as shown by 'history list'")
    show_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the codemap as JSON instead of a text outline",
    )
    add_common_arguments(show_parser)

    delete_parser = history_actions.add_parser("delete", help="Delete a saved codemap")
    delete_parser.add_argument("name", help="Codemap filename as shown by 'history list'")
    add_common_arguments(delete_parser)

    for action_parser in (list_parser, show_parser, delete_parser):
        action_parser.add_argument(
            "--storage-dir",
            type=Path,
            default=None,
            help="Directory where generated codemaps are saved.",
        )

    return history_parser
