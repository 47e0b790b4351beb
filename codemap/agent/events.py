"""Progress/result events emitted by the codemap orchestrators.

Orchestrators report progress through a single async ``EventSink``. The
event set is closed: consumers can match exhaustively on ``event.kind``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal, Union

from codemap.core.models import Codemap

MessageRole = Literal["user", "assistant", "tool", "error"]
TraceStatus = Literal["start", "complete"]


@dataclass(frozen=True)
class MessageEvent:
    role: MessageRole
    text: str
    kind: Literal["message"] = "message"


@dataclass(frozen=True)
class ToolCallEvent:
    tool: str
    arguments: str
    result: str
    kind: Literal["tool_call"] = "tool_call"


@dataclass(frozen=True)
class CodemapUpdateEvent:
    """Full snapshot of the codemap; never mutated after emission."""

    codemap: Codemap
    kind: Literal["codemap_update"] = "codemap_update"


@dataclass(frozen=True)
class PhaseChangeEvent:
    phase: str
    stage: int
    kind: Literal["phase_change"] = "phase_change"


@dataclass(frozen=True)
class TraceProcessingEvent:
    trace_id: str
    stage: int
    status: TraceStatus
    kind: Literal["trace_processing"] = "trace_processing"


CodemapEvent = Union[
    MessageEvent,
    ToolCallEvent,
    CodemapUpdateEvent,
    PhaseChangeEvent,
    TraceProcessingEvent,
]

EventSink = Callable[[CodemapEvent], Awaitable[None]]


async def discard_event(event: CodemapEvent) -> None:
    """EventSink that drops everything (used when no consumer is attached)."""
    del event
