"""Fast mode: one tool-calling conversation that returns the whole codemap."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from codemap.agent.colorize import colorize_diagram
from codemap.agent.conversation import open_conversation, require_provider
from codemap.agent.events import (
    CodemapUpdateEvent,
    EventSink,
    MessageEvent,
    discard_event,
)
from codemap.agent.schemas import CodemapResponse, decode_model_output
from codemap.core.config.generation_config import GenerationConfig
from codemap.core.models import Codemap
from codemap.llm_manager import LLMManager
from codemap.prompts.template_engine import PromptTemplateEngine


def warn_unknown_subgraphs(codemap: Codemap) -> None:
    """Log diagram subgraphs that do not name a trace of the codemap."""
    for trace_id, subgraph_ids in codemap.unknown_subgraph_ids().items():
        logger.warning(
            f"Trace {trace_id} diagram references unknown subgraph id(s): "
            f"{', '.join(subgraph_ids)}"
        )


class FastCodemapAgent:
    """Single-conversation codemap generator.

    Any model, tool or parse error propagates to the caller; Fast mode has
    no partial results.
    """

    mode = "fast"

    def __init__(
        self,
        llm_manager: LLMManager | None,
        templates: PromptTemplateEngine,
        config: GenerationConfig | None = None,
    ) -> None:
        self._llm_manager = llm_manager
        self._templates = templates
        self._config = config or GenerationConfig()

    def _system_prompt(self, workspace_root: Path) -> str:
        system_prompt = self._templates.load(
            "fast",
            "system",
            {
                "workspace_root": str(workspace_root),
                "mermaid_rules": self._templates.load_mermaid(),
            },
        )
        if self._config.maximize_parallel_tool_calls:
            addon = self._templates.load_parallel_tool_calls_addon()
            system_prompt = f"{system_prompt}\n\n{addon}"
        return system_prompt

    async def generate(
        self,
        query: str,
        workspace_root: Path,
        emit: EventSink = discard_event,
    ) -> Codemap:
        provider = require_provider(self._llm_manager)
        workspace_root = workspace_root.resolve()

        system_prompt = self._system_prompt(workspace_root)
        user_prompt = self._templates.load(
            "fast",
            "user",
            {"query": query, "workspace_root": str(workspace_root)},
        )

        logger.info(f"[Fast] Generating codemap for: {query}")
        conversation = open_conversation(
            provider, workspace_root, emit, self._config, label="fast"
        )
        conversation.add_system(system_prompt)

        await emit(MessageEvent(role="user", text=query))
        reply = await conversation.run_turn(user_prompt)

        response = decode_model_output(reply, CodemapResponse)
        codemap = Codemap(
            title=response.title,
            description=response.description,
            traces=[trace.to_trace() for trace in response.traces],
        )
        for trace in codemap.traces:
            if trace.trace_text_diagram:
                trace.trace_text_diagram = colorize_diagram(trace.trace_text_diagram)

        codemap.validate()
        warn_unknown_subgraphs(codemap)

        await emit(CodemapUpdateEvent(codemap=codemap.snapshot()))
        logger.info(
            f"[Fast] Codemap ready: {len(codemap.traces)} trace(s), "
            f"{conversation.tokens_used} tokens"
        )
        return codemap
