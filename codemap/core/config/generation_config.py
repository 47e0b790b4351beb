"""
Generation configuration for codemap pipelines.

Configuration Sources (in order of precedence):
1. CLI arguments
2. Environment variables (CODEMAP_*)
3. Default values

Environment Variables:
    CODEMAP_DEFAULT_MODE=smart
    CODEMAP_MAX_TOOL_ROUNDS=12
    CODEMAP_TRACE_CONCURRENCY=8
    CODEMAP_SUGGESTION_DEBOUNCE_SECONDS=30
"""

import argparse
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Session-controller defaults. Exposed as module constants so callers that
# build controllers without a GenerationConfig share the same values.
SUGGESTION_DEBOUNCE_SECONDS = 30.0
RECENT_FILES_LIMIT = 20
SUGGESTION_FILE_COUNT = 10
MIN_SUGGESTION_FILES = 3
TOOL_RESULT_PREVIEW_CHARS = 300


class GenerationConfig(BaseSettings):
    """Tunables for the Fast/Smart orchestrators and the session controller."""

    model_config = SettingsConfigDict(
        env_prefix="CODEMAP_",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    default_mode: Literal["fast", "smart"] = Field(
        default="smart",
        description="Mode used when a submission does not specify one",
    )

    # Model turns
    max_tool_rounds: int = Field(
        default=12,
        ge=1,
        le=50,
        description="Maximum tool-calling rounds per stage before forcing an answer",
    )
    max_completion_tokens: int = Field(
        default=8192,
        ge=256,
        description="Completion token budget per model turn",
    )
    maximize_parallel_tool_calls: bool = Field(
        default=True,
        description="Append the parallel-tool-calls addon to the Fast system prompt",
    )

    # Smart mode
    trace_concurrency: int = Field(
        default=8,
        ge=1,
        le=32,
        description="Maximum number of traces deep-dived concurrently",
    )

    # Transcript
    tool_result_preview_chars: int = Field(
        default=TOOL_RESULT_PREVIEW_CHARS,
        ge=0,
        description="Characters of a tool result kept in transcript previews",
    )

    # Suggestions
    suggestion_debounce_seconds: float = Field(
        default=SUGGESTION_DEBOUNCE_SECONDS,
        gt=0,
        description="Quiet period after the last file touch before suggesting",
    )
    recent_files_limit: int = Field(
        default=RECENT_FILES_LIMIT,
        ge=1,
        description="Number of recently touched files tracked",
    )
    suggestion_file_count: int = Field(
        default=SUGGESTION_FILE_COUNT,
        ge=1,
        description="Number of most recent files passed to the suggestion prompt",
    )
    min_suggestion_files: int = Field(
        default=MIN_SUGGESTION_FILES,
        ge=1,
        description="Minimum tracked files before suggestions are requested",
    )
    suggestion_max_tokens: int = Field(
        default=500,
        ge=50,
        description="Completion token budget for suggestion requests",
    )

    # Workspace tools
    max_file_read_lines: int = Field(
        default=400,
        ge=10,
        description="Maximum lines returned by a single read_file tool call",
    )
    max_search_results: int = Field(
        default=50,
        ge=1,
        description="Maximum matches returned by a single search_text tool call",
    )

    # Storage
    storage_dir: Path = Field(
        default=Path.home() / ".codemap" / "codemaps",
        description="Directory where generated codemaps are saved",
    )

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add generation-related CLI arguments."""
        parser.add_argument(
            "--max-tool-rounds",
            type=int,
            help="Maximum tool-calling rounds per stage.",
        )
        parser.add_argument(
            "--trace-concurrency",
            type=int,
            help="Maximum number of traces processed concurrently (smart mode).",
        )
        parser.add_argument(
            "--storage-dir",
            type=Path,
            help="Directory where generated codemaps are saved.",
        )

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        """Extract generation config overrides from CLI arguments."""
        overrides: dict[str, Any] = {}

        if getattr(args, "max_tool_rounds", None) is not None:
            overrides["max_tool_rounds"] = args.max_tool_rounds

        if getattr(args, "trace_concurrency", None) is not None:
            overrides["trace_concurrency"] = args.trace_concurrency

        if getattr(args, "storage_dir", None) is not None:
            overrides["storage_dir"] = Path(args.storage_dir).expanduser()

        return overrides

    def __repr__(self) -> str:
        """String representation with key settings."""
        return (
            f"GenerationConfig("
            f"default_mode={self.default_mode}, "
            f"max_tool_rounds={self.max_tool_rounds}, "
            f"trace_concurrency={self.trace_concurrency}, "
            f"storage_dir={self.storage_dir})"
        )
