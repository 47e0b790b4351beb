"""Failure tracking for per-trace deep dives.

A Smart session keeps one ``FailureMetrics`` per run so it can report which
traces were dropped and why.
"""

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from codemap.agent.errors import ModelCallError
from codemap.agent.schemas import ParseFailure
from codemap.core.models import CodemapValidationError
from codemap.prompts.template_engine import TemplateError

_MODEL_ERROR_HINTS = ("rate limit", "429", "401", "403", "api key", "quota", "completion failed")


def _cause_chain(exception: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = exception
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def categorize_error(exception: BaseException) -> str:
    """Map an exception to timeout, parse, template, validation, model or unknown.

    The whole cause chain is inspected, since stage failures wrap the
    error that actually happened.
    """
    chain = _cause_chain(exception)
    for exc in chain:
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            return "timeout"
        if isinstance(exc, ParseFailure):
            return "parse"
        if isinstance(exc, TemplateError):
            return "template"
        if isinstance(exc, CodemapValidationError):
            return "validation"

    messages = " ".join(str(exc).lower() for exc in chain)
    if "timed out" in messages or "timeout" in messages:
        return "timeout"
    if any(isinstance(exc, ModelCallError) for exc in chain) or any(
        hint in messages for hint in _MODEL_ERROR_HINTS
    ):
        return "model"
    return "unknown"


@dataclass
class FailureInfo:
    item: str
    message: str
    category: str

    def to_dict(self) -> dict[str, str]:
        return {"item": self.item, "error": self.message, "type": self.category}


@dataclass
class FailureMetrics:
    """Failures recorded across ``total_operations`` traces."""

    total_operations: int
    failures: list[FailureInfo] = field(default_factory=list)

    def add_failure(self, item: str, exception: BaseException) -> None:
        self.failures.append(
            FailureInfo(
                item=item,
                message=f"{type(exception).__name__}: {exception}",
                category=categorize_error(exception),
            )
        )

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def success_count(self) -> int:
        return self.total_operations - self.failure_count

    def to_dict(self, max_items: int = 5) -> dict[str, Any]:
        """Summary for logs: counts, categories and the first few failures."""
        summary: dict[str, Any] = {
            "count": self.failure_count,
            "total": self.total_operations,
        }
        if self.failures:
            summary["by_type"] = dict(Counter(f.category for f in self.failures))
            summary["items"] = [f.to_dict() for f in self.failures[:max_items]]
        return summary
