"""Exception types raised by the codemap orchestrators."""

from __future__ import annotations


class CodemapConfigurationError(RuntimeError):
    """No model client is configured; callers treat this as a no-op state."""


class ModelCallError(RuntimeError):
    """A model turn or tool round failed (transport, timeout, round budget)."""


class StageFailedError(RuntimeError):
    """A generation stage failed; carries where it happened."""

    def __init__(
        self,
        stage: int,
        message: str,
        *,
        trace_id: str | None = None,
    ) -> None:
        location = f"stage {stage}" if trace_id is None else (
            f"stage {stage} (trace {trace_id})"
        )
        super().__init__(f"{location} failed: {message}")
        self.stage = stage
        self.trace_id = trace_id
