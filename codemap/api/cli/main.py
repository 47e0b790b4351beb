"""codemap command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable

from loguru import logger
from pydantic import ValidationError

from codemap.core.config.config import Config

from .commands.check import check_command
from .commands.generate import generate_command
from .commands.history import history_command
from .commands.suggest import suggest_command
from .commands.templates import templates_command
from .parsers import (
    add_check_subparser,
    add_generate_subparser,
    add_history_subparser,
    add_suggest_subparser,
    add_templates_subparser,
)

CommandHandler = Callable[[argparse.Namespace, Config], Awaitable[None]]

COMMANDS: dict[str, CommandHandler] = {
    "generate": generate_command,
    "suggest": suggest_command,
    "history": history_command,
    "templates": templates_command,
    "check": check_command,
}


def setup_logging(verbose: bool = False) -> None:
    """Route loguru output to stderr; DEBUG when verbose, WARNING otherwise."""
    logger.remove()
    if verbose:
        logger.add(
            sys.stderr,
            level="DEBUG",
            format=(
                "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
                "<cyan>{name}</cyan> - <level>{message}</level>"
            ),
        )
    else:
        logger.add(
            sys.stderr,
            level="WARNING",
            format="<level>{level}</level>: {message}",
        )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codemap",
        description="Generate codemaps: traces of source locations that answer a question.",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    add_generate_subparser(subparsers)
    add_suggest_subparser(subparsers)
    add_history_subparser(subparsers)
    add_templates_subparser(subparsers)
    add_check_subparser(subparsers)

    return parser


async def async_main(args: argparse.Namespace) -> None:
    try:
        config = Config.from_args(args)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    logger.debug(f"Loaded configuration: {config.llm!r} {config.generation!r}")
    await COMMANDS[args.command](args, config)


def main(argv: list[str] | None = None) -> None:
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(getattr(args, "verbose", False))

    try:
        asyncio.run(async_main(args))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.exception("Full error details:")
        sys.exit(1)


if __name__ == "__main__":
    main()
