"""Common CLI argument patterns shared across parsers."""

import argparse


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Add arguments common to all commands.

    Args:
        parser: Argument parser to add common arguments to
    """
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )


def add_config_arguments(parser: argparse.ArgumentParser, configs: list[str]) -> None:
    """Add CLI arguments for specified config sections.

    Args:
        parser: Argument parser to add config arguments to
        configs: List of config section names to include
    """
    if "llm" in configs:
        from codemap.core.config.llm_config import LLMConfig

        LLMConfig.add_cli_arguments(parser)

    if "generation" in configs:
        from codemap.core.config.generation_config import GenerationConfig

        GenerationConfig.add_cli_arguments(parser)
