"""Pydantic models for structured model outputs and the strict decode step.

Models answer each stage with a JSON document (optionally inside a fenced
code block). ``decode_model_output`` turns that text into a validated model
and distinguishes two failure kinds:

* ``NoStructuredDataError``: the reply contains no JSON document at all.
* ``MalformedStructuredDataError``: a JSON document is present but does not
  parse or does not match the expected schema.
"""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from codemap.core.models import Location, Trace

T = TypeVar("T", bound=BaseModel)

_FENCED_BLOCK_RE = re.compile(r"```([A-Za-z0-9_-]*)[ \t]*\n(.*?)```", re.DOTALL)


class ParseFailure(ValueError):
    """Model output could not be turned into the expected shape."""

    def __init__(self, message: str, *, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class NoStructuredDataError(ParseFailure):
    """The model reply contained no JSON document."""


class MalformedStructuredDataError(ParseFailure):
    """The model reply contained JSON that failed to parse or validate."""


_WIRE_MODEL_CONFIG = ConfigDict(extra="ignore", populate_by_name=True)


class LocationPayload(BaseModel):
    """Response schema for one source location."""

    model_config = _WIRE_MODEL_CONFIG

    id: str = Field(min_length=1)
    path: str = Field(min_length=1)
    line_number: int = Field(alias="lineNumber", ge=1)
    line_content: str = Field(default="", alias="lineContent")
    title: str = ""
    description: str = ""

    @field_validator("id", "path", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_location(self, location_id: str | None = None) -> Location:
        return Location(
            id=location_id or self.id,
            path=self.path,
            line_number=self.line_number,
            line_content=self.line_content,
            title=self.title,
            description=self.description,
        )


class TraceOutlinePayload(BaseModel):
    """Response schema for a trace skeleton (no locations yet)."""

    model_config = _WIRE_MODEL_CONFIG

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def to_trace(self) -> Trace:
        return Trace(id=self.id, title=self.title, description=self.description)


class TracePayload(TraceOutlinePayload):
    """Response schema for a fully populated trace (Fast mode)."""

    locations: list[LocationPayload] = Field(min_length=1)
    trace_text_diagram: str | None = Field(default=None, alias="traceTextDiagram")
    trace_guide: str | None = Field(default=None, alias="traceGuide")

    def to_trace(self) -> Trace:
        return Trace(
            id=self.id,
            title=self.title,
            description=self.description,
            locations=[loc.to_location() for loc in self.locations],
            trace_text_diagram=self.trace_text_diagram,
            trace_guide=self.trace_guide,
        )


def _ensure_unique(ids: list[str], label: str) -> None:
    seen: set[str] = set()
    for item in ids:
        if item in seen:
            raise ValueError(f"duplicate {label} id {item!r}")
        seen.add(item)


class CodemapOutlineResponse(BaseModel):
    """Response schema for Smart stages 1 and 2."""

    model_config = _WIRE_MODEL_CONFIG

    title: str = Field(min_length=1)
    description: str = ""
    traces: list[TraceOutlinePayload] = Field(min_length=1)

    @field_validator("traces")
    @classmethod
    def _unique_traces(cls, traces: list[TraceOutlinePayload]) -> list[TraceOutlinePayload]:
        _ensure_unique([trace.id for trace in traces], "trace")
        return traces


class CodemapResponse(BaseModel):
    """Response schema for the Fast-mode final answer."""

    model_config = _WIRE_MODEL_CONFIG

    title: str = Field(min_length=1)
    description: str = ""
    traces: list[TracePayload] = Field(min_length=1)

    @field_validator("traces")
    @classmethod
    def _unique_ids(cls, traces: list[TracePayload]) -> list[TracePayload]:
        _ensure_unique([trace.id for trace in traces], "trace")
        _ensure_unique(
            [loc.id for trace in traces for loc in trace.locations], "location"
        )
        return traces


class LocationsResponse(BaseModel):
    """Response schema for Smart stages 3 and 4."""

    model_config = _WIRE_MODEL_CONFIG

    locations: list[LocationPayload] = Field(min_length=1)
    trace_guide: str | None = Field(default=None, alias="traceGuide")


class DiagramResponse(BaseModel):
    """Response schema for Smart stage 5."""

    model_config = _WIRE_MODEL_CONFIG

    trace_text_diagram: str = Field(alias="traceTextDiagram", min_length=1)


class SuggestionPayload(BaseModel):
    """Response schema for one suggestion."""

    model_config = _WIRE_MODEL_CONFIG

    id: str | None = None
    text: str = Field(min_length=1)


def _candidate_documents(text: str) -> list[str]:
    """Collect JSON-looking substrings, fenced blocks first."""
    candidates: list[str] = []
    for lang, body in _FENCED_BLOCK_RE.findall(text):
        if lang.lower() in ("", "json", "jsonc"):
            stripped = body.strip()
            if stripped.startswith(("{", "[")):
                candidates.append(stripped)

    stripped_text = text.strip()
    if stripped_text.startswith(("{", "[")):
        candidates.append(stripped_text)

    for opener, closer in (("{", "}"), ("[", "]")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            candidates.append(text[start : end + 1])

    # Keep order, drop duplicates
    return list(dict.fromkeys(candidates))


def extract_json_document(text: str) -> Any:
    """Return the first JSON document found in ``text``.

    Raises:
        NoStructuredDataError: nothing JSON-like is present
        MalformedStructuredDataError: JSON-like text is present but invalid
    """
    candidates = _candidate_documents(text)
    if not candidates:
        raise NoStructuredDataError(
            "Model reply contains no structured data", raw_text=text
        )

    last_error: json.JSONDecodeError | None = None
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc

    raise MalformedStructuredDataError(
        f"Model reply contains malformed JSON: {last_error}", raw_text=text
    )


def decode_model_output(text: str, response_model: type[T]) -> T:
    """Strictly decode a model reply into ``response_model``."""
    document = extract_json_document(text)
    try:
        return response_model.model_validate(document)
    except ValidationError as exc:
        raise MalformedStructuredDataError(
            f"Model reply does not match {response_model.__name__}: "
            f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}",
            raw_text=text,
        ) from exc


def decode_suggestions(text: str) -> list[SuggestionPayload]:
    """Decode a JSON array of suggestions."""
    document = extract_json_document(text)
    if isinstance(document, dict) and isinstance(document.get("suggestions"), list):
        document = document["suggestions"]
    if not isinstance(document, list):
        raise MalformedStructuredDataError(
            "Suggestion reply is not a JSON array", raw_text=text
        )
    try:
        return [SuggestionPayload.model_validate(item) for item in document]
    except ValidationError as exc:
        raise MalformedStructuredDataError(
            f"Suggestion reply does not match schema: {exc.error_count()} error(s)",
            raw_text=text,
        ) from exc


def extract_diagram(text: str) -> str:
    """Decode a stage-5 reply: JSON ``traceTextDiagram`` or a ```mermaid block."""
    for lang, body in _FENCED_BLOCK_RE.findall(text):
        if lang.lower() == "mermaid" and body.strip():
            return body.strip()
    return decode_model_output(text, DiagramResponse).trace_text_diagram
