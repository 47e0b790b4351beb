"""Tool-calling conversation loop shared by every generation stage."""

from __future__ import annotations

import asyncio
import copy
from pathlib import Path
from typing import Any

from loguru import logger

from codemap.agent.errors import CodemapConfigurationError, ModelCallError
from codemap.agent.events import EventSink, MessageEvent, ToolCallEvent
from codemap.agent.tools import WorkspaceToolbox
from codemap.core.config.generation_config import GenerationConfig
from codemap.interfaces.llm_provider import LLMProvider, LLMResponse
from codemap.llm_manager import LLMManager
from codemap.utils.text import truncate_preview

_FINAL_ANSWER_NUDGE = (
    "You have used your tool budget for this stage. Do not call more tools; "
    "reply now with the final JSON for this stage."
)


class StageConversation:
    """One chat transcript with the model, driven stage by stage.

    Each ``run_turn`` appends a user prompt, then alternates model turns and
    tool executions until the model answers without requesting tools (or the
    round budget runs out). Stages 1-2 of Smart mode reuse one conversation;
    each trace's stages 3-5 run on a ``fork`` of it.
    """

    def __init__(
        self,
        provider: LLMProvider,
        toolbox: WorkspaceToolbox,
        emit: EventSink,
        *,
        max_tool_rounds: int = 12,
        max_completion_tokens: int = 8192,
        tool_result_preview_chars: int = 300,
        parallel_tool_calls: bool = True,
        label: str = "codemap",
    ) -> None:
        self._provider = provider
        self._toolbox = toolbox
        self._emit = emit
        self._max_tool_rounds = max_tool_rounds
        self._max_completion_tokens = max_completion_tokens
        self._preview_chars = tool_result_preview_chars
        self._parallel_tool_calls = parallel_tool_calls
        self.label = label
        self.messages: list[dict[str, Any]] = []
        self.tokens_used = 0

    def add_system(self, content: str) -> None:
        self.messages.append({"role": "system", "content": content})

    def fork(self, label: str) -> StageConversation:
        """Copy of this conversation that evolves independently."""
        forked = StageConversation(
            self._provider,
            self._toolbox,
            self._emit,
            max_tool_rounds=self._max_tool_rounds,
            max_completion_tokens=self._max_completion_tokens,
            tool_result_preview_chars=self._preview_chars,
            parallel_tool_calls=self._parallel_tool_calls,
            label=label,
        )
        forked.messages = copy.deepcopy(self.messages)
        return forked

    async def _model_turn(self, tools: list[dict[str, Any]]) -> LLMResponse:
        try:
            response = await self._provider.complete_with_tools(
                self.messages,
                tools,
                max_completion_tokens=self._max_completion_tokens,
                parallel_tool_calls=self._parallel_tool_calls,
            )
        except (RuntimeError, TimeoutError) as exc:
            raise ModelCallError(f"[{self.label}] model call failed: {exc}") from exc
        self.tokens_used += response.tokens_used
        return response

    def _record_assistant(self, response: LLMResponse) -> None:
        message: dict[str, Any] = {"role": "assistant", "content": response.content or None}
        if response.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in response.tool_calls
            ]
        self.messages.append(message)

    async def run_turn(self, prompt: str) -> str:
        """Send ``prompt`` and return the model's final text for this stage."""
        self.messages.append({"role": "user", "content": prompt})
        tools = self._toolbox.definitions()

        for round_number in range(1, self._max_tool_rounds + 1):
            response = await self._model_turn(tools)
            self._record_assistant(response)

            if response.content.strip():
                await self._emit(MessageEvent(role="assistant", text=response.content))

            if not response.tool_calls:
                return response.content

            logger.debug(
                f"[{self.label}] round {round_number}: "
                f"{len(response.tool_calls)} tool call(s)"
            )
            results = await asyncio.gather(
                *(
                    self._toolbox.execute(call.name, call.arguments)
                    for call in response.tool_calls
                )
            )
            for call, result in zip(response.tool_calls, results, strict=True):
                self.messages.append(
                    {"role": "tool", "tool_call_id": call.id, "content": result}
                )
                await self._emit(
                    ToolCallEvent(
                        tool=call.name,
                        arguments=call.arguments,
                        result=truncate_preview(result, self._preview_chars),
                    )
                )

        logger.warning(
            f"[{self.label}] tool budget of {self._max_tool_rounds} rounds exhausted; "
            "requesting final answer"
        )
        self.messages.append({"role": "user", "content": _FINAL_ANSWER_NUDGE})
        response = await self._model_turn([])
        self._record_assistant(response)
        if response.tool_calls:
            raise ModelCallError(
                f"[{self.label}] model kept requesting tools after the round budget"
            )
        if response.content.strip():
            await self._emit(MessageEvent(role="assistant", text=response.content))
        return response.content


def require_provider(llm_manager: LLMManager | None) -> LLMProvider:
    """Return the configured provider or raise CodemapConfigurationError."""
    if llm_manager is None or not llm_manager.is_configured():
        raise CodemapConfigurationError(
            "No language model is configured. Set CODEMAP_LLM_API_KEY or OPENAI_API_KEY."
        )
    return llm_manager.get_provider()


def open_conversation(
    provider: LLMProvider,
    workspace_root: Path,
    emit: EventSink,
    config: GenerationConfig,
    *,
    label: str,
) -> StageConversation:
    """Start a conversation with a fresh workspace toolbox."""
    toolbox = WorkspaceToolbox(
        workspace_root,
        max_read_lines=config.max_file_read_lines,
        max_search_results=config.max_search_results,
    )
    return StageConversation(
        provider,
        toolbox,
        emit,
        max_tool_rounds=config.max_tool_rounds,
        max_completion_tokens=config.max_completion_tokens,
        tool_result_preview_chars=config.tool_result_preview_chars,
        parallel_tool_calls=config.maximize_parallel_tool_calls,
        label=label,
    )
