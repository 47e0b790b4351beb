"""Smart mode: staged codemap generation.

Stage 1 (discovery) and stage 2 (structuring) share one conversation and
produce the trace skeleton, which is published as soon as it is known. The
deep dive (stages 3-5) is delegated to ``TraceProcessor``, which forks the
stage-2 conversation once per trace.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from codemap.agent.conversation import (
    StageConversation,
    open_conversation,
    require_provider,
)
from codemap.agent.errors import ModelCallError, StageFailedError
from codemap.agent.events import (
    CodemapUpdateEvent,
    EventSink,
    MessageEvent,
    PhaseChangeEvent,
    discard_event,
)
from codemap.agent.fast import warn_unknown_subgraphs
from codemap.agent.failures import FailureMetrics
from codemap.agent.schemas import (
    CodemapOutlineResponse,
    ParseFailure,
    decode_model_output,
)
from codemap.agent.trace_processor import TraceProcessor
from codemap.core.config.generation_config import GenerationConfig
from codemap.core.models import Codemap
from codemap.llm_manager import LLMManager
from codemap.prompts.template_engine import PromptTemplateEngine, TemplateError

PHASES: dict[int, str] = {1: "discovery", 2: "structuring", 3: "deep_dive"}


def skeleton_codemap(outline: CodemapOutlineResponse) -> Codemap:
    """Codemap with titled traces and no locations yet."""
    return Codemap(
        title=outline.title,
        description=outline.description,
        traces=[trace.to_trace() for trace in outline.traces],
    )


class SmartCodemapAgent:
    """Five-stage codemap generator with per-trace failure isolation."""

    mode = "smart"

    def __init__(
        self,
        llm_manager: LLMManager | None,
        templates: PromptTemplateEngine,
        config: GenerationConfig | None = None,
    ) -> None:
        self._llm_manager = llm_manager
        self._templates = templates
        self._config = config or GenerationConfig()
        self.last_failures: FailureMetrics | None = None

    async def _run_global_stage(
        self,
        conversation: StageConversation,
        stage: int,
        prompt_prefix: str | None = None,
    ) -> CodemapOutlineResponse:
        try:
            prompt = self._templates.load_stage(stage)
            if prompt_prefix:
                prompt = f"{prompt_prefix}\n\n{prompt}"
            reply = await conversation.run_turn(prompt)
            return decode_model_output(reply, CodemapOutlineResponse)
        except (ParseFailure, ModelCallError, TemplateError) as exc:
            raise StageFailedError(stage, str(exc)) from exc

    async def generate(
        self,
        query: str,
        workspace_root: Path,
        emit: EventSink = discard_event,
    ) -> Codemap:
        provider = require_provider(self._llm_manager)
        workspace_root = workspace_root.resolve()
        variables = {"query": query, "workspace_root": str(workspace_root)}

        system_prompt = self._templates.load("smart", "system", variables)
        user_prompt = self._templates.load("smart", "user", variables)

        logger.info(f"[Smart] Generating codemap for: {query}")
        conversation = open_conversation(
            provider, workspace_root, emit, self._config, label="smart"
        )
        conversation.add_system(system_prompt)
        await emit(MessageEvent(role="user", text=query))

        await emit(PhaseChangeEvent(phase=PHASES[1], stage=1))
        outline = await self._run_global_stage(conversation, 1, user_prompt)
        codemap = skeleton_codemap(outline)
        await emit(CodemapUpdateEvent(codemap=codemap.snapshot()))
        logger.info(f"[Smart] Discovery found {len(codemap.traces)} trace(s)")

        await emit(PhaseChangeEvent(phase=PHASES[2], stage=2))
        outline = await self._run_global_stage(conversation, 2)
        codemap = skeleton_codemap(outline)
        await emit(CodemapUpdateEvent(codemap=codemap.snapshot()))
        logger.info(
            f"[Smart] Structured into traces: {', '.join(codemap.trace_ids())}"
        )

        await emit(PhaseChangeEvent(phase=PHASES[3], stage=3))
        processor = TraceProcessor(
            self._templates, self._config, emit, codemap, conversation
        )
        await processor.process_all(list(codemap.traces))
        failures = self.last_failures = processor.failures

        result = processor.codemap
        warn_unknown_subgraphs(result)
        succeeded = failures.success_count
        if failures.total_operations and not succeeded:
            logger.warning("[Smart] Every trace failed; codemap has no traces")
        logger.info(
            f"[Smart] Codemap ready: {succeeded}/{failures.total_operations} trace(s)"
        )
        return result
