"""Trailing-edge debounce on the running asyncio loop."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger


class Debouncer:
    """Run ``callback`` once ``delay`` seconds after the last ``schedule()``.

    Every ``schedule()`` cancels the pending run and starts the wait again.
    Errors raised by the callback are logged, never propagated.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        self._delay = delay
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        """Restart the wait; a no-op when called outside a running loop."""
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; debounce skipped")
            return
        self._task = loop.create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        await asyncio.sleep(self._delay)
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error(f"Debounced callback failed: {exc}")
