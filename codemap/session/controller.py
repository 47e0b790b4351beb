"""Generation session controller.

The controller is what a front end talks to. It owns the transcript, the
current codemap and the suggestion list, runs one generation at a time, and
pushes state snapshots plus raw events to a ``SessionConsumer``.

Every submission gets a new session number. Events and completions that
carry an older number (because ``close()`` ran in between) are dropped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol

from loguru import logger

from codemap.agent.events import (
    CodemapEvent,
    CodemapUpdateEvent,
    EventSink,
    MessageEvent,
    ToolCallEvent,
)
from codemap.agent.fast import FastCodemapAgent
from codemap.agent.smart import SmartCodemapAgent
from codemap.agent.suggestions import generate_suggestions
from codemap.core.config.generation_config import GenerationConfig
from codemap.core.models import (
    CODEMAP_MODES,
    Codemap,
    CodemapMode,
    Suggestion,
    TranscriptEntry,
)
from codemap.llm_manager import LLMManager
from codemap.prompts.template_engine import PromptTemplateEngine
from codemap.session.debounce import Debouncer
from codemap.session.recent_files import RecentFiles
from codemap.storage.codemap_storage import (
    CodemapStorageError,
    CodemapStore,
    StoredCodemap,
)

NotifyLevel = Literal["info", "warning", "error"]
SUGGESTION_CAPTION = "Based on recent activity"


@dataclass(frozen=True)
class SessionState:
    codemap: Codemap | None
    messages: tuple[TranscriptEntry, ...]
    is_processing: bool
    mode: CodemapMode
    suggestions: tuple[Suggestion, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "codemap": self.codemap.to_dict() if self.codemap else None,
            "messages": [entry.to_dict() for entry in self.messages],
            "isProcessing": self.is_processing,
            "mode": self.mode,
            "suggestions": [suggestion.to_dict() for suggestion in self.suggestions],
        }


class SessionConsumer(Protocol):
    """Front-end side of the controller (editor panel, CLI, tests)."""

    async def publish_state(self, state: SessionState) -> None: ...

    async def publish_event(self, event: CodemapEvent) -> None: ...

    async def notify(self, level: NotifyLevel, message: str) -> None: ...


class CodemapAgent(Protocol):
    async def generate(
        self, query: str, workspace_root: Path, emit: EventSink
    ) -> Codemap: ...


AgentFactory = Callable[[CodemapMode], CodemapAgent]


class NullConsumer:
    """Consumer that ignores everything."""

    async def publish_state(self, state: SessionState) -> None:
        del state

    async def publish_event(self, event: CodemapEvent) -> None:
        del event

    async def notify(self, level: NotifyLevel, message: str) -> None:
        logger.debug(f"[{level}] {message}")


def format_tool_entry(event: ToolCallEvent) -> str:
    return f"[{event.tool}]\n{event.arguments}\n---\n{event.result}"


class GenerationSessionController:
    """Single-flight codemap generation plus history and suggestions."""

    def __init__(
        self,
        llm_manager: LLMManager | None,
        templates: PromptTemplateEngine,
        store: CodemapStore,
        config: GenerationConfig | None = None,
        consumer: SessionConsumer | None = None,
        agent_factory: AgentFactory | None = None,
    ) -> None:
        self._llm_manager = llm_manager
        self._templates = templates
        self._store = store
        self._config = config or GenerationConfig()
        self._consumer: SessionConsumer = consumer or NullConsumer()
        self._agent_factory = agent_factory or self._default_agent_factory

        self._codemap: Codemap | None = None
        self._messages: list[TranscriptEntry] = []
        self._suggestions: list[Suggestion] = []
        self._mode: CodemapMode = self._config.default_mode
        self._is_processing = False
        self._session_id = 0
        self._close_count = 0

        self._recent_files = RecentFiles(self._config.recent_files_limit)
        self._debouncer = Debouncer(
            self._config.suggestion_debounce_seconds, self._refresh_from_debounce
        )

    # -- state ---------------------------------------------------------------

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def session_id(self) -> int:
        return self._session_id

    @property
    def recent_files(self) -> RecentFiles:
        return self._recent_files

    def is_configured(self) -> bool:
        return self._llm_manager is not None and self._llm_manager.is_configured()

    def state(self) -> SessionState:
        return SessionState(
            codemap=self._codemap.snapshot() if self._codemap else None,
            messages=tuple(self._messages),
            is_processing=self._is_processing,
            mode=self._mode,
            suggestions=tuple(self._suggestions),
        )

    async def _publish_state(self) -> None:
        await self._consumer.publish_state(self.state())

    def _default_agent_factory(self, mode: CodemapMode) -> CodemapAgent:
        if mode == "fast":
            return FastCodemapAgent(self._llm_manager, self._templates, self._config)
        return SmartCodemapAgent(self._llm_manager, self._templates, self._config)

    # -- generation ----------------------------------------------------------

    def _session_sink(self, session_id: int) -> EventSink:
        async def _sink(event: CodemapEvent) -> None:
            if session_id != self._session_id:
                logger.debug(f"Dropping {event.kind} event from stale session {session_id}")
                return

            publish_state = True
            if isinstance(event, MessageEvent):
                self._messages.append(TranscriptEntry(role=event.role, content=event.text))
            elif isinstance(event, ToolCallEvent):
                self._messages.append(
                    TranscriptEntry(role="tool", content=format_tool_entry(event))
                )
            elif isinstance(event, CodemapUpdateEvent):
                self._codemap = event.codemap
            else:
                publish_state = False
                logger.debug(f"Session {session_id}: {event}")

            await self._consumer.publish_event(event)
            if publish_state:
                await self._publish_state()

        return _sink

    async def submit(
        self,
        query: str,
        mode: CodemapMode | None = None,
        workspace_root: Path | None = None,
    ) -> bool:
        """Start a generation; False when rejected (busy, unconfigured, bad mode)."""
        if self._is_processing:
            logger.warning("Already processing a request, ignoring submit")
            await self._consumer.notify("warning", "Already processing a request")
            return False

        if not self.is_configured():
            logger.error("No language model configured")
            await self._consumer.notify(
                "error", "Please configure a language model API key first"
            )
            return False

        selected_mode = mode or self._config.default_mode
        if selected_mode not in CODEMAP_MODES:
            await self._consumer.notify("error", f"Unknown codemap mode: {selected_mode}")
            return False

        # Claim the session before the first await so a concurrent submit
        # sees the busy flag.
        self._is_processing = True
        self._session_id += 1
        session_id = self._session_id
        self._mode = selected_mode
        self._messages = []
        self._codemap = None

        root = (workspace_root or Path.cwd()).resolve()
        logger.info(f"Session {session_id}: {selected_mode} codemap for {query!r} in {root}")

        try:
            await self._run_agent(selected_mode, query, root, session_id)
            if session_id != self._session_id:
                logger.info(f"Session {session_id} finished after it was closed; dropped")
                return True
            # Whatever was published is kept, even when the agent failed.
            self._save_current()
        finally:
            self._is_processing = False
            if session_id == self._session_id:
                await self._publish_state()

        return True

    async def _run_agent(
        self, mode: CodemapMode, query: str, root: Path, session_id: int
    ) -> None:
        try:
            await self._publish_state()
            agent = self._agent_factory(mode)
            await agent.generate(query, root, self._session_sink(session_id))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if session_id != self._session_id:
                logger.info(f"Session {session_id} failed after it was closed: {exc}")
                return
            logger.error(f"Codemap generation failed: {exc}")
            self._messages.append(
                TranscriptEntry(role="error", content=f"Codemap generation failed: {exc}")
            )
            await self._consumer.notify("error", f"Codemap generation failed: {exc}")

    def _save_current(self) -> None:
        if self._codemap is None:
            logger.warning("No codemap was generated")
            return
        try:
            path = self._store.save(self._codemap)
        except (CodemapStorageError, OSError) as exc:
            logger.error(f"Failed to save codemap: {exc}")
            self._messages.append(
                TranscriptEntry(role="error", content=f"Failed to save codemap: {exc}")
            )
            return
        self._messages.append(
            TranscriptEntry(role="assistant", content=f"Codemap saved to: {path}")
        )

    # -- suggestions ---------------------------------------------------------

    def touch_file(self, path: str) -> None:
        """Record file activity and restart the suggestion debounce timer.

        Outside a running event loop only the activity is recorded.
        """
        self._recent_files.touch(path)
        self._debouncer.schedule()

    async def _refresh_from_debounce(self) -> None:
        await self.refresh_suggestions()

    async def refresh_suggestions(self) -> list[Suggestion]:
        if not self.is_configured():
            return []
        if len(self._recent_files) < self._config.min_suggestion_files:
            return []

        close_count = self._close_count
        generated = await generate_suggestions(
            self._llm_manager,
            self._templates,
            self._recent_files.recent(self._config.suggestion_file_count),
            self._config,
        )
        if close_count != self._close_count:
            return []

        self._suggestions = [
            Suggestion(id=item.id, text=item.text, sub=SUGGESTION_CAPTION)
            for item in generated
        ]
        await self._publish_state()
        return list(self._suggestions)

    # -- history -------------------------------------------------------------

    def history(self) -> list[StoredCodemap]:
        return self._store.list()

    async def load_codemap(self, codemap: Codemap) -> None:
        self._codemap = codemap
        self._messages = [
            TranscriptEntry(role="assistant", content=f"Loaded saved codemap: {codemap.title}")
        ]
        await self._publish_state()

    async def load_history(self, filename: str) -> bool:
        if self._is_processing:
            await self._consumer.notify("warning", "Already processing a request")
            return False
        try:
            codemap = self._store.load(filename)
        except ValueError as exc:
            logger.error(f"Failed to load codemap {filename}: {exc}")
            codemap = None
        if codemap is None:
            await self._consumer.notify("error", f"Failed to load codemap: {filename}")
            return False
        await self.load_codemap(codemap)
        return True

    async def delete_history(self, filename: str) -> bool:
        try:
            deleted = self._store.delete(filename)
        except ValueError as exc:
            logger.error(f"Failed to delete codemap {filename}: {exc}")
            deleted = False
        if deleted:
            await self._consumer.notify("info", "Codemap deleted")
            await self._publish_state()
        else:
            await self._consumer.notify("error", f"Failed to delete codemap: {filename}")
        return deleted

    # -- lifecycle -----------------------------------------------------------

    def close(self) -> None:
        """Stop timers and invalidate the running session, if any."""
        self._debouncer.cancel()
        self._session_id += 1
        self._close_count += 1
        logger.debug("Session controller closed")
