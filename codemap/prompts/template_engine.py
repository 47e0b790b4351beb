"""Prompt template engine.

Templates are markdown files laid out as ``<family>/<role-or-stageN>.md``
under a templates root (by default the ``templates`` directory shipped inside
this package). Placeholders use ``{{ name }}`` syntax; substitution never
fails on unknown names, it leaves the placeholder in place and records a
warning.
"""

from __future__ import annotations

import importlib.resources
import re
from collections.abc import Mapping
from importlib.resources.abc import Traversable
from pathlib import Path, PurePosixPath
from typing import Literal

from loguru import logger

PromptType = Literal["suggestion", "fast", "smart"]
PromptRole = Literal["system", "user"]

PROMPT_TYPES: tuple[str, ...] = ("suggestion", "fast", "smart")
PROMPT_ROLES: tuple[str, ...] = ("system", "user")
STAGE_COUNT = 5
TRACE_STAGES: tuple[int, ...] = (3, 4, 5)

_TEMPLATES_PACKAGE = "codemap.prompts"
_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
_LEADING_HEADING_RE = re.compile(r"^#[^\n]*\n+")


class TemplateError(RuntimeError):
    """Base class for template failures; fatal for the requesting stage."""


class TemplateNotFoundError(TemplateError):
    """Raised when a template's backing file does not exist."""

    def __init__(self, relative_path: str) -> None:
        super().__init__(f"Template file not found: {relative_path}")
        self.relative_path = relative_path


class InvalidStageError(TemplateError, ValueError):
    """Raised for stage numbers outside the accepted range."""


def _default_templates_root() -> Traversable:
    return importlib.resources.files(_TEMPLATES_PACKAGE).joinpath("templates")


def _validate_relative_path(relative_path: str) -> PurePosixPath:
    candidate = PurePosixPath(relative_path)
    if candidate.is_absolute():
        raise ValueError(f"Template path must be relative: {relative_path}")
    if ".." in candidate.parts:
        raise ValueError(f"Template path must not traverse parents: {relative_path}")
    if not candidate.parts:
        raise ValueError("Template path must not be empty")
    return candidate


class PromptTemplateEngine:
    """Loads, caches and fills prompt templates.

    One instance is normally created per process and shared by every
    orchestrator; tests create their own instance (optionally pointed at a
    temporary ``templates_root``) so cache state never leaks between runs.
    """

    def __init__(self, templates_root: Path | Traversable | None = None) -> None:
        self._root: Path | Traversable = (
            templates_root if templates_root is not None else _default_templates_root()
        )
        self._cache: dict[tuple[str, str], str] = {}
        self.warnings: list[str] = []

    @property
    def cached_keys(self) -> list[tuple[str, str]]:
        return list(self._cache)

    def _read(self, relative_path: str) -> str:
        template_path = _validate_relative_path(relative_path)
        resource = self._root.joinpath(*template_path.parts)
        if not resource.is_file():
            raise TemplateNotFoundError(relative_path)
        with resource.open("r", encoding="utf-8") as handle:
            return handle.read()

    def _load_cached(
        self,
        cache_key: tuple[str, str],
        relative_path: str,
        strip_markdown_header: bool = True,
    ) -> str:
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        content = self._read(relative_path)
        if strip_markdown_header:
            content = _LEADING_HEADING_RE.sub("", content, count=1)
        content = content.strip()

        self._cache[cache_key] = content
        logger.debug(f"Loaded prompt template {relative_path} ({len(content)} chars)")
        return content

    def _load_template(self, prompt_type: str, role: str) -> str:
        if prompt_type not in PROMPT_TYPES:
            raise TemplateError(
                f"Unknown prompt type {prompt_type!r}; expected one of {PROMPT_TYPES}"
            )
        if role not in PROMPT_ROLES:
            raise TemplateError(
                f"Unknown prompt role {role!r}; expected one of {PROMPT_ROLES}"
            )
        return self._load_cached((prompt_type, role), f"{prompt_type}/{role}.md")

    def _load_stage_template(self, stage: int) -> str:
        return self._load_cached(("smart", f"stage{stage}"), f"smart/stage{stage}.md")

    def _load_mermaid_template(self) -> str:
        return self._load_cached(("smart", "mermaid"), "smart/mermaid.md")

    def substitute(self, template: str, variables: Mapping[str, str]) -> str:
        """Replace ``{{ name }}`` placeholders; unknown names stay verbatim."""

        def _replace(match: re.Match[str]) -> str:
            name = match.group(1)
            if name in variables:
                return str(variables[name])
            message = f"Template variable not provided: {name}"
            logger.warning(message)
            self.warnings.append(message)
            return match.group(0)

        return _PLACEHOLDER_RE.sub(_replace, template)

    def load(
        self,
        prompt_type: PromptType,
        role: PromptRole,
        variables: Mapping[str, str] | None = None,
    ) -> str:
        """Load a ``<type>/<role>.md`` template and fill its placeholders."""
        template = self._load_template(prompt_type, role)
        return self.substitute(template, variables or {})

    def load_stage(self, stage: int, variables: Mapping[str, str] | None = None) -> str:
        """Load a Smart-mode stage template (1-5)."""
        if stage < 1 or stage > STAGE_COUNT:
            raise InvalidStageError(
                f"Invalid stage number: {stage}. Must be 1-{STAGE_COUNT}."
            )
        template = self._load_stage_template(stage)
        return self.substitute(template, variables or {})

    def load_trace_stage(
        self,
        stage: int,
        trace_id: str,
        variables: Mapping[str, str] | None = None,
    ) -> str:
        """Load a trace-scoped stage template (3-5) with ``trace_id`` injected."""
        if stage not in TRACE_STAGES:
            raise InvalidStageError(
                f"Invalid stage number for trace processing: {stage}. Must be 3-5."
            )
        template = self._load_stage_template(stage)
        merged = dict(variables or {})
        merged["trace_id"] = trace_id
        return self.substitute(template, merged)

    def load_mermaid(self, variables: Mapping[str, str] | None = None) -> str:
        """Load the shared diagram-rules fragment."""
        template = self._load_mermaid_template()
        return self.substitute(template, variables or {})

    def load_parallel_tool_calls_addon(self) -> str:
        """Load the Fast-mode addon asking the model to batch tool calls."""
        # The addon has no heading, so it is cached verbatim after trimming.
        return self._load_cached(
            ("fast", "maximize_parallel_tool_calls"),
            "fast/maximize_parallel_tool_calls.md",
            strip_markdown_header=False,
        )

    @staticmethod
    def template_paths() -> list[str]:
        """Relative paths of every template the pipeline can request."""
        paths = [f"{t}/{r}.md" for t in PROMPT_TYPES for r in PROMPT_ROLES]
        paths.extend(f"smart/stage{stage}.md" for stage in range(1, STAGE_COUNT + 1))
        paths.extend(["smart/mermaid.md", "fast/maximize_parallel_tool_calls.md"])
        return paths

    def preload(self) -> int:
        """Eagerly load every known template; returns how many loaded.

        Individual failures are logged and skipped so one missing optional
        template does not block the others.
        """
        loaded = 0
        for prompt_type in PROMPT_TYPES:
            for role in PROMPT_ROLES:
                try:
                    self._load_template(prompt_type, role)
                    loaded += 1
                except TemplateError as exc:
                    logger.warning(
                        f"Failed to preload template {prompt_type}/{role}: {exc}"
                    )

        for stage in range(1, STAGE_COUNT + 1):
            try:
                self._load_stage_template(stage)
                loaded += 1
            except TemplateError as exc:
                logger.warning(f"Failed to preload stage template {stage}: {exc}")

        for label, loader in (
            ("smart/mermaid", self._load_mermaid_template),
            ("fast/maximize_parallel_tool_calls", self.load_parallel_tool_calls_addon),
        ):
            try:
                loader()
                loaded += 1
            except TemplateError as exc:
                logger.warning(f"Failed to preload template {label}: {exc}")

        return loaded

    def clear(self) -> None:
        """Drop every cached template (and recorded warnings)."""
        self._cache.clear()
        self.warnings.clear()
