"""Codemap data model.

Wire format (stored JSON and consumer payloads) uses camelCase keys:
``lineNumber``, ``lineContent``, ``traceTextDiagram``, ``traceGuide`` and
``savedAt``. The dataclasses below use snake_case attributes and convert at
the ``to_dict`` / ``from_dict`` boundary.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Literal

CodemapMode = Literal["fast", "smart"]
CODEMAP_MODES: tuple[str, ...] = ("fast", "smart")


class CodemapValidationError(ValueError):
    """Raised when a codemap violates its id uniqueness invariants."""


@dataclass(frozen=True)
class Location:
    id: str
    path: str
    line_number: int
    line_content: str = ""
    title: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.line_number, bool) or not isinstance(self.line_number, int):
            raise ValueError(
                f"Location.line_number must be an int (got {type(self.line_number)})"
            )
        if self.line_number < 1:
            raise ValueError(
                f"Location.line_number must be >= 1 (got {self.line_number})"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "lineNumber": self.line_number,
            "lineContent": self.line_content,
            "title": self.title,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Location:
        return cls(
            id=str(data["id"]),
            path=str(data["path"]),
            line_number=int(data["lineNumber"]),
            line_content=str(data.get("lineContent", "")),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
        )


@dataclass
class Trace:
    id: str
    title: str
    description: str = ""
    locations: list[Location] = field(default_factory=list)
    trace_text_diagram: str | None = None
    trace_guide: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "locations": [loc.to_dict() for loc in self.locations],
        }
        if self.trace_text_diagram is not None:
            data["traceTextDiagram"] = self.trace_text_diagram
        if self.trace_guide is not None:
            data["traceGuide"] = self.trace_guide
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Trace:
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            locations=[Location.from_dict(item) for item in data.get("locations", [])],
            trace_text_diagram=data.get("traceTextDiagram"),
            trace_guide=data.get("traceGuide"),
        )


@dataclass
class Codemap:
    title: str
    description: str = ""
    traces: list[Trace] = field(default_factory=list)
    saved_at: str | None = None

    def trace_ids(self) -> list[str]:
        return [trace.id for trace in self.traces]

    def get_trace(self, trace_id: str) -> Trace | None:
        for trace in self.traces:
            if trace.id == trace_id:
                return trace
        return None

    def upsert_trace(self, trace: Trace) -> None:
        """Replace the trace with the same id in place, or append it."""
        for idx, existing in enumerate(self.traces):
            if existing.id == trace.id:
                self.traces[idx] = trace
                return
        self.traces.append(trace)

    def remove_trace(self, trace_id: str) -> bool:
        before = len(self.traces)
        self.traces = [trace for trace in self.traces if trace.id != trace_id]
        return len(self.traces) != before

    def validate(self) -> None:
        """Raise CodemapValidationError on duplicate trace or location ids."""
        seen_traces: set[str] = set()
        seen_locations: dict[str, str] = {}
        for trace in self.traces:
            if trace.id in seen_traces:
                raise CodemapValidationError(f"Duplicate trace id: {trace.id!r}")
            seen_traces.add(trace.id)
            for loc in trace.locations:
                owner = seen_locations.get(loc.id)
                if owner is not None:
                    raise CodemapValidationError(
                        f"Duplicate location id {loc.id!r} "
                        f"(traces {owner!r} and {trace.id!r})"
                    )
                seen_locations[loc.id] = trace.id

    def unknown_subgraph_ids(self) -> dict[str, list[str]]:
        """Map trace id -> subgraph ids in its diagram that name no trace."""
        from codemap.agent.colorize import extract_subgraph_ids

        known = set(self.trace_ids())
        unknown: dict[str, list[str]] = {}
        for trace in self.traces:
            if not trace.trace_text_diagram:
                continue
            missing = [
                sid
                for sid in extract_subgraph_ids(trace.trace_text_diagram)
                if sid not in known
            ]
            if missing:
                unknown[trace.id] = missing
        return unknown

    def snapshot(self) -> Codemap:
        """Deep copy suitable for publishing to consumers."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "traces": [trace.to_dict() for trace in self.traces],
        }
        if self.saved_at is not None:
            data["savedAt"] = self.saved_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Codemap:
        return cls(
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            traces=[Trace.from_dict(item) for item in data.get("traces", [])],
            saved_at=data.get("savedAt"),
        )


@dataclass(frozen=True)
class Suggestion:
    id: str
    text: str
    sub: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "text": self.text}
        if self.sub is not None:
            data["sub"] = self.sub
        return data


@dataclass(frozen=True)
class TranscriptEntry:
    """One human-readable line of the generation transcript."""

    role: Literal["user", "assistant", "tool", "error"]
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}
