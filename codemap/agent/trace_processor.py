"""Per-trace deep dive (stages 3-5) for Smart mode.

Each trace runs locate (3) -> elaborate (4) -> diagram (5) on its own fork
of the stage-2 conversation. Traces run concurrently, bounded by a
semaphore; finished traces are merged into the shared codemap one at a time
under a lock, and every merge publishes a fresh snapshot.

A failure in any of stages 3-5 is local to its trace: the trace is removed
from the aggregate, recorded in ``FailureMetrics`` and reported as an
``error`` message, while the other traces keep going.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TypeVar

from loguru import logger

from codemap.agent.colorize import colorize_diagram
from codemap.agent.conversation import StageConversation
from codemap.agent.errors import ModelCallError, StageFailedError
from codemap.agent.events import (
    CodemapUpdateEvent,
    EventSink,
    MessageEvent,
    TraceProcessingEvent,
)
from codemap.agent.failures import FailureMetrics
from codemap.agent.schemas import (
    LocationsResponse,
    ParseFailure,
    decode_model_output,
    extract_diagram,
)
from codemap.core.config.generation_config import GenerationConfig
from codemap.core.models import Codemap, CodemapValidationError, Location, Trace
from codemap.prompts.template_engine import PromptTemplateEngine, TemplateError
from codemap.utils.text import letter_suffix

R = TypeVar("R")

# Errors that fail a single stage; anything else is a bug and propagates.
_STAGE_ERRORS = (ParseFailure, ModelCallError, TemplateError, ValueError)


@dataclass
class TraceOutcome:
    trace_id: str
    trace: Trace | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.trace is not None


def canonical_location_ids(
    trace_id: str, locations: list[Location]
) -> tuple[list[Location], dict[str, str]]:
    """Rename locations to ``<trace_id>a``, ``<trace_id>b``, ... in order.

    Returns the renamed locations and a lookup from both the model's ids and
    the canonical ids to the canonical id, used to match stage-4 replies.
    """
    renamed: list[Location] = []
    id_map: dict[str, str] = {}
    for index, location in enumerate(locations):
        canonical = f"{trace_id}{letter_suffix(index)}"
        id_map.setdefault(location.id, canonical)
        id_map[canonical] = canonical
        renamed.append(
            Location(
                id=canonical,
                path=location.path,
                line_number=location.line_number,
                line_content=location.line_content,
                title=location.title,
                description=location.description,
            )
        )
    return renamed, id_map


class TraceProcessor:
    """Runs stages 3-5 for every trace and merges results into ``codemap``."""

    def __init__(
        self,
        templates: PromptTemplateEngine,
        config: GenerationConfig,
        emit: EventSink,
        codemap: Codemap,
        base_conversation: StageConversation,
    ) -> None:
        self._templates = templates
        self._config = config
        self._emit = emit
        self._codemap = codemap
        self._base_conversation = base_conversation
        self._lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(max(1, config.trace_concurrency))
        self.failures = FailureMetrics(total_operations=0)

    @property
    def codemap(self) -> Codemap:
        return self._codemap

    async def process_all(self, traces: list[Trace]) -> list[TraceOutcome]:
        """Deep-dive every trace concurrently; outcomes keep input order."""
        self.failures = FailureMetrics(total_operations=len(traces))
        if not traces:
            return []

        logger.info(
            f"[Smart] Processing {len(traces)} trace(s) with "
            f"concurrency={min(self._config.trace_concurrency, len(traces))}"
        )
        outcomes = await asyncio.gather(*(self._process_one(trace) for trace in traces))

        if self.failures.failure_count:
            logger.warning(
                f"[Smart] {self.failures.failure_count}/{len(traces)} trace(s) failed: "
                f"{self.failures.to_dict()}"
            )
        return list(outcomes)

    async def _process_one(self, outline: Trace) -> TraceOutcome:
        async with self._semaphore:
            try:
                trace = await self._run_stages(outline)
                await self._merge(trace)
            except asyncio.CancelledError:
                raise
            except (StageFailedError, CodemapValidationError) as exc:
                await self._drop(outline.id, exc)
                return TraceOutcome(trace_id=outline.id, error=str(exc))
            return TraceOutcome(trace_id=outline.id, trace=trace)

    def _stage_variables(self, stage: int) -> Mapping[str, str]:
        if stage == 5:
            return {"mermaid_rules": self._templates.load_mermaid()}
        return {}

    async def _run_stage(
        self,
        conversation: StageConversation,
        stage: int,
        trace_id: str,
        decode: Callable[[str], R],
    ) -> R:
        await self._emit(TraceProcessingEvent(trace_id=trace_id, stage=stage, status="start"))
        try:
            prompt = self._templates.load_trace_stage(
                stage, trace_id, self._stage_variables(stage)
            )
            reply = await conversation.run_turn(prompt)
            result = decode(reply)
        except _STAGE_ERRORS as exc:
            raise StageFailedError(stage, str(exc), trace_id=trace_id) from exc
        await self._emit(
            TraceProcessingEvent(trace_id=trace_id, stage=stage, status="complete")
        )
        return result

    async def _run_stages(self, outline: Trace) -> Trace:
        trace_id = outline.id
        conversation = self._base_conversation.fork(label=f"trace {trace_id}")

        located = await self._run_stage(
            conversation,
            3,
            trace_id,
            lambda reply: decode_model_output(reply, LocationsResponse),
        )
        locations, id_map = canonical_location_ids(
            trace_id, [payload.to_location() for payload in located.locations]
        )
        logger.debug(f"[Smart] Trace {trace_id}: {len(locations)} location(s) located")

        elaborated, locations = await self._run_stage(
            conversation,
            4,
            trace_id,
            lambda reply: self._match_elaborated(
                trace_id, id_map, decode_model_output(reply, LocationsResponse)
            ),
        )

        diagram = await self._run_stage(conversation, 5, trace_id, extract_diagram)

        return Trace(
            id=trace_id,
            title=outline.title,
            description=outline.description,
            locations=locations,
            trace_text_diagram=colorize_diagram(diagram),
            trace_guide=elaborated.trace_guide,
        )

    def _match_elaborated(
        self,
        trace_id: str,
        id_map: dict[str, str],
        elaborated: LocationsResponse,
    ) -> tuple[LocationsResponse, list[Location]]:
        matched: list[Location] = []
        used: set[str] = set()
        for payload in elaborated.locations:
            canonical = id_map.get(payload.id)
            if canonical is None or canonical in used:
                logger.debug(
                    f"[Smart] Trace {trace_id}: dropping unmatched location {payload.id!r}"
                )
                continue
            used.add(canonical)
            matched.append(payload.to_location(canonical))

        if not matched:
            raise ValueError("no elaborated location matched a located one")
        return elaborated, matched

    async def _merge(self, trace: Trace) -> None:
        async with self._lock:
            self._codemap.upsert_trace(trace)
            try:
                self._codemap.validate()
            except CodemapValidationError:
                self._codemap.remove_trace(trace.id)
                raise
            snapshot = self._codemap.snapshot()
            await self._emit(CodemapUpdateEvent(codemap=snapshot))
        logger.info(f"[Smart] Trace {trace.id} complete ({len(trace.locations)} locations)")

    async def _drop(self, trace_id: str, exc: Exception) -> None:
        self.failures.add_failure(f"trace {trace_id}", exc)
        logger.error(f"[Smart] Trace {trace_id} failed: {exc}")
        async with self._lock:
            self._codemap.remove_trace(trace_id)
            snapshot = self._codemap.snapshot()
            await self._emit(CodemapUpdateEvent(codemap=snapshot))
        await self._emit(MessageEvent(role="error", text=f"Trace {trace_id} failed: {exc}"))
