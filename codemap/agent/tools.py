"""Workspace tools exposed to the model during codemap generation.

The model explores the codebase through three read-only function tools:
``list_directory``, ``read_file`` and ``search_text``. Every path argument is
resolved relative to the workspace root and may not escape it; ``.gitignore``
rules at the workspace root are honored.

Tool failures never raise into the orchestrator. They come back to the model
as an ``Error: ...`` result so it can correct itself.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pathspec
from loguru import logger

DEFAULT_EXCLUDED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        "__pycache__",
        ".venv",
        "venv",
        ".mypy_cache",
        ".pytest_cache",
        ".ruff_cache",
        "dist",
        "build",
        ".tox",
    }
)
_MAX_LINE_CHARS = 400
_MAX_LISTING_ENTRIES = 500
_BINARY_SNIFF_BYTES = 2048


class ToolError(ValueError):
    """Raised by tool implementations for invalid arguments or paths."""


@dataclass
class Tool:
    """Tool definition with metadata and implementation."""

    name: str
    description: str
    parameters: dict[str, Any]
    implementation: Callable[..., str]

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


def _load_gitignore(root: Path) -> pathspec.PathSpec | None:
    gitignore = root / ".gitignore"
    if not gitignore.is_file():
        return None
    try:
        lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as exc:
        logger.debug(f"Failed to read {gitignore}: {exc}")
        return None
    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


def _looks_binary(path: Path) -> bool:
    try:
        with path.open("rb") as handle:
            return b"\x00" in handle.read(_BINARY_SNIFF_BYTES)
    except OSError:
        return True


class WorkspaceToolbox:
    """Read-only file-system tools scoped to one workspace root."""

    def __init__(
        self,
        root: Path,
        *,
        max_read_lines: int = 400,
        max_search_results: int = 50,
    ) -> None:
        self._root = root.resolve()
        self._max_read_lines = max_read_lines
        self._max_search_results = max_search_results
        self._ignore_spec = _load_gitignore(self._root)
        self._tools: dict[str, Tool] = {
            tool.name: tool
            for tool in (
                Tool(
                    name="list_directory",
                    description=(
                        "List files and sub-directories of a workspace directory. "
                        "Directories end with '/'."
                    ),
                    parameters={
                        "type": "object",
                        "properties": {
                            "path": {
                                "type": "string",
                                "description": "Directory relative to the workspace root ('.' for the root).",
                            },
                            "depth": {
                                "type": "integer",
                                "description": "How many levels to descend (1-3, default 1).",
                            },
                        },
                        "required": ["path"],
                    },
                    implementation=self.list_directory,
                ),
                Tool(
                    name="read_file",
                    description=(
                        "Read a text file from the workspace. Lines are prefixed "
                        "with their 1-based line number."
                    ),
                    parameters={
                        "type": "object",
                        "properties": {
                            "path": {
                                "type": "string",
                                "description": "File path relative to the workspace root.",
                            },
                            "start_line": {
                                "type": "integer",
                                "description": "First line to return (1-based, default 1).",
                            },
                            "end_line": {
                                "type": "integer",
                                "description": "Last line to return (inclusive).",
                            },
                        },
                        "required": ["path"],
                    },
                    implementation=self.read_file,
                ),
                Tool(
                    name="search_text",
                    description=(
                        "Search workspace files for a literal string (or a regular "
                        "expression when is_regex is true). Returns path:line: text."
                    ),
                    parameters={
                        "type": "object",
                        "properties": {
                            "pattern": {"type": "string", "description": "Text to find."},
                            "path": {
                                "type": "string",
                                "description": "Directory to search (default '.').",
                            },
                            "glob": {
                                "type": "string",
                                "description": "Optional filename glob, e.g. '*.py'.",
                            },
                            "is_regex": {
                                "type": "boolean",
                                "description": "Treat pattern as a regular expression.",
                            },
                        },
                        "required": ["pattern"],
                    },
                    implementation=self.search_text,
                ),
            )
        }

    @property
    def root(self) -> Path:
        return self._root

    def definitions(self) -> list[dict[str, Any]]:
        """Tool definitions in OpenAI function-tool wire format."""
        return [tool.to_openai() for tool in self._tools.values()]

    async def execute(self, name: str, arguments: str) -> str:
        """Run a tool by name with JSON-encoded arguments; never raises."""
        tool = self._tools.get(name)
        if tool is None:
            return f"Error: unknown tool {name!r}. Available: {', '.join(self._tools)}"

        try:
            parsed = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as exc:
            return f"Error: arguments are not valid JSON: {exc}"
        if not isinstance(parsed, dict):
            return "Error: arguments must be a JSON object"

        try:
            return await asyncio.to_thread(tool.implementation, **parsed)
        except TypeError as exc:
            return f"Error: invalid arguments for {name}: {exc}"
        except (ToolError, OSError, re.error) as exc:
            logger.debug(f"Tool {name} failed: {exc}")
            return f"Error: {exc}"

    def _resolve(self, raw_path: str | None) -> Path:
        candidate_str = (raw_path or ".").strip() or "."
        candidate = Path(candidate_str)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        resolved = candidate.resolve()
        if resolved != self._root and not resolved.is_relative_to(self._root):
            raise ToolError(f"path {raw_path!r} is outside the workspace")
        return resolved

    def _relative(self, path: Path) -> str:
        rel = path.relative_to(self._root).as_posix()
        return rel or "."

    def _is_ignored(self, path: Path) -> bool:
        rel_parts = path.relative_to(self._root).parts
        if any(part in DEFAULT_EXCLUDED_DIRS for part in rel_parts):
            return True
        if self._ignore_spec is None or not rel_parts:
            return False
        rel = "/".join(rel_parts)
        if path.is_dir():
            rel += "/"
        return self._ignore_spec.match_file(rel)

    def list_directory(self, path: str = ".", depth: int = 1) -> str:
        directory = self._resolve(path)
        if not directory.is_dir():
            raise ToolError(f"{path!r} is not a directory")
        depth = max(1, min(int(depth), 3))

        entries: list[str] = []

        def _walk(current: Path, level: int) -> None:
            for child in sorted(current.iterdir(), key=lambda p: (not p.is_dir(), p.name)):
                if len(entries) >= _MAX_LISTING_ENTRIES:
                    return
                if self._is_ignored(child):
                    continue
                indent = "  " * (level - 1)
                if child.is_dir():
                    entries.append(f"{indent}{child.name}/")
                    if level < depth:
                        _walk(child, level + 1)
                else:
                    entries.append(f"{indent}{child.name}")

        _walk(directory, 1)
        if not entries:
            return f"{self._relative(directory)}/ is empty"
        if len(entries) >= _MAX_LISTING_ENTRIES:
            entries.append(f"... (truncated at {_MAX_LISTING_ENTRIES} entries)")
        return "\n".join(entries)

    def read_file(
        self,
        path: str,
        start_line: int = 1,
        end_line: int | None = None,
    ) -> str:
        file_path = self._resolve(path)
        if not file_path.is_file():
            raise ToolError(f"{path!r} is not a file")
        if _looks_binary(file_path):
            raise ToolError(f"{path!r} looks like a binary file")

        lines = file_path.read_text(encoding="utf-8", errors="replace").splitlines()
        total = len(lines)
        start = max(1, int(start_line))
        last = total if end_line is None else min(int(end_line), total)
        last = min(last, start + self._max_read_lines - 1)
        if total == 0:
            return f"{self._relative(file_path)} is empty"
        if start > total:
            raise ToolError(f"start_line {start} is past the end of file ({total} lines)")

        width = len(str(last))
        body = [
            f"{number:>{width}}| {lines[number - 1][:_MAX_LINE_CHARS]}"
            for number in range(start, last + 1)
        ]
        header = f"{self._relative(file_path)} (lines {start}-{last} of {total})"
        return "\n".join([header, *body])

    def search_text(
        self,
        pattern: str,
        path: str = ".",
        glob: str | None = None,
        is_regex: bool = False,
    ) -> str:
        if not pattern:
            raise ToolError("pattern must not be empty")
        directory = self._resolve(path)
        matcher = re.compile(pattern if is_regex else re.escape(pattern))

        results: list[str] = []
        candidates = [directory] if directory.is_file() else directory.rglob(glob or "*")
        for file_path in candidates:
            if len(results) >= self._max_search_results:
                break
            if not file_path.is_file() or self._is_ignored(file_path):
                continue
            if _looks_binary(file_path):
                continue
            try:
                text = file_path.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            rel = self._relative(file_path)
            for number, line in enumerate(text.splitlines(), start=1):
                if matcher.search(line):
                    results.append(f"{rel}:{number}: {line.strip()[:_MAX_LINE_CHARS]}")
                    if len(results) >= self._max_search_results:
                        break

        if not results:
            return f"No matches for {pattern!r}"
        if len(results) >= self._max_search_results:
            results.append(f"... (truncated at {self._max_search_results} matches)")
        return "\n".join(results)
