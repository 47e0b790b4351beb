"""Argument parsers for the codemap CLI."""

from .check_parser import add_check_subparser
from .common_arguments import add_common_arguments, add_config_arguments
from .generate_parser import add_generate_subparser
from .history_parser import add_history_subparser
from .suggest_parser import add_suggest_subparser
from .templates_parser import add_templates_subparser

__all__: list[str] = [
    "add_check_subparser",
    "add_common_arguments",
    "add_config_arguments",
    "add_generate_subparser",
    "add_history_subparser",
    "add_suggest_subparser",
    "add_templates_subparser",
]
