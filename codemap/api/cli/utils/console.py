"""Terminal output for codemap commands."""

from __future__ import annotations

import sys
from typing import TextIO

from codemap.agent.events import (
    CodemapEvent,
    CodemapUpdateEvent,
    MessageEvent,
    PhaseChangeEvent,
    ToolCallEvent,
    TraceProcessingEvent,
)
from codemap.core.models import Codemap
from codemap.session.controller import NotifyLevel, SessionState


class ConsoleConsumer:
    """SessionConsumer that streams progress to stderr.

    Tool calls and assistant text are only shown with ``verbose``; phases,
    trace progress, errors and notifications are always shown.
    """

    def __init__(self, verbose: bool = False, stream: TextIO | None = None) -> None:
        self._verbose = verbose
        self._stream = stream or sys.stderr
        self.last_state: SessionState | None = None

    def _write(self, text: str) -> None:
        print(text, file=self._stream, flush=True)

    async def publish_state(self, state: SessionState) -> None:
        self.last_state = state

    async def publish_event(self, event: CodemapEvent) -> None:
        if isinstance(event, PhaseChangeEvent):
            self._write(f"== Stage {event.stage}: {event.phase}")
        elif isinstance(event, TraceProcessingEvent):
            if event.status == "complete" or self._verbose:
                self._write(f"   trace {event.trace_id} stage {event.stage} {event.status}")
        elif isinstance(event, CodemapUpdateEvent):
            self._write(f"   codemap: {len(event.codemap.traces)} trace(s)")
        elif isinstance(event, MessageEvent):
            if event.role == "error":
                self._write(f"!! {event.text}")
            elif self._verbose:
                self._write(f"[{event.role}] {event.text}")
        elif isinstance(event, ToolCallEvent) and self._verbose:
            self._write(f"[tool] {event.tool} {event.arguments}")

    async def notify(self, level: NotifyLevel, message: str) -> None:
        self._write(f"{level.upper()}: {message}")


def render_codemap_text(codemap: Codemap) -> str:
    """Plain-text outline of a codemap: traces, locations, diagrams."""
    lines: list[str] = [f"# {codemap.title}"]
    if codemap.description:
        lines.extend(["", codemap.description])

    for trace in codemap.traces:
        lines.extend(["", f"## [{trace.id}] {trace.title}"])
        if trace.description:
            lines.append(trace.description)
        for location in trace.locations:
            lines.append(
                f"  {location.id}. {location.path}:{location.line_number}"
                + (f"  {location.title}" if location.title else "")
            )
            if location.line_content:
                lines.append(f"      {location.line_content.strip()}")
        if trace.trace_guide:
            lines.extend(["", trace.trace_guide])
        if trace.trace_text_diagram:
            lines.extend(["", "```mermaid", trace.trace_text_diagram, "```"])

    return "\n".join(lines)
