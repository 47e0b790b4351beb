"""Scripted LLM provider used by the tests (no network)."""

from __future__ import annotations

import copy
import inspect
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from codemap.agent.events import CodemapEvent
from codemap.interfaces.llm_provider import LLMProvider, LLMResponse, ToolCallRequest
from codemap.llm_manager import LLMManager

Reply = str | LLMResponse | Exception
Handler = Callable[[list[dict[str, Any]], list[dict[str, Any]]], Any]


def text_reply(content: str) -> LLMResponse:
    return LLMResponse(content=content, tokens_used=10, model="fake-model", finish_reason="stop")


def tool_reply(*calls: tuple[str, dict[str, Any]], content: str = "") -> LLMResponse:
    return LLMResponse(
        content=content,
        tokens_used=10,
        model="fake-model",
        finish_reason="tool_calls",
        tool_calls=[
            ToolCallRequest(id=f"call_{idx}", name=name, arguments=json.dumps(args))
            for idx, (name, args) in enumerate(calls)
        ],
    )


def last_user_message(messages: list[dict[str, Any]]) -> str:
    for message in reversed(messages):
        if message["role"] == "user":
            return message["content"]
    return ""


class ScriptedProvider(LLMProvider):
    """Replays queued replies, or asks ``handler(messages, tools)`` per turn."""

    def __init__(
        self,
        replies: list[Reply] | None = None,
        handler: Handler | None = None,
    ) -> None:
        self._replies = list(replies or [])
        self._handler = handler
        self.tool_turns: list[list[dict[str, Any]]] = []
        self.prompts: list[tuple[str, str | None]] = []

    @property
    def name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return "fake-model"

    async def _next(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]) -> LLMResponse:
        if self._handler is not None:
            result = self._handler(messages, tools)
            if inspect.isawaitable(result):
                result = await result
        elif self._replies:
            result = self._replies.pop(0)
        else:
            raise RuntimeError("LLM completion failed: no scripted reply left")

        if isinstance(result, Exception):
            raise result
        if isinstance(result, str):
            return text_reply(result)
        return result

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
    ) -> LLMResponse:
        self.prompts.append((prompt, system))
        messages = [{"role": "system", "content": system or ""}, {"role": "user", "content": prompt}]
        return await self._next(messages, [])

    async def complete_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
        parallel_tool_calls: bool = True,
    ) -> LLMResponse:
        self.tool_turns.append(copy.deepcopy(messages))
        return await self._next(messages, tools)

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "provider": self.name}

    def get_usage_stats(self) -> dict[str, Any]:
        return {"requests_made": len(self.tool_turns) + len(self.prompts)}


def manager_for(provider: LLMProvider) -> LLMManager:
    return LLMManager.from_provider(provider)


class EventRecorder:
    """EventSink that keeps every event in arrival order."""

    def __init__(self) -> None:
        self.events: list[CodemapEvent] = []

    async def __call__(self, event: CodemapEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: str) -> list[CodemapEvent]:
        return [event for event in self.events if event.kind == kind]


MINIMAL_TEMPLATES: dict[str, str] = {
    "fast/system.md": "FAST SYSTEM {{ workspace_root }}\n{{ mermaid_rules }}",
    "fast/user.md": "FAST {{ query }}",
    "fast/maximize_parallel_tool_calls.md": "PARALLEL",
    "smart/system.md": "SMART SYSTEM {{ workspace_root }}",
    "smart/user.md": "QUESTION {{ query }}",
    "smart/stage1.md": "STAGE1",
    "smart/stage2.md": "STAGE2",
    "smart/stage3.md": "STAGE3 trace={{ trace_id }}",
    "smart/stage4.md": "STAGE4 trace={{ trace_id }}",
    "smart/stage5.md": "STAGE5 trace={{ trace_id }}\n{{ mermaid_rules }}",
    "smart/mermaid.md": "RULES",
    "suggestion/system.md": "SUGGEST",
    "suggestion/user.md": "FILES\n{{ recent_files }}",
}


def write_templates(root: Path, templates: dict[str, str] | None = None) -> Path:
    """Write a templates tree under ``root`` and return it."""
    for relative, content in (templates or MINIMAL_TEMPLATES).items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root
