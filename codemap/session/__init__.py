"""Generation session controller and its helpers."""

from .controller import GenerationSessionController, SessionConsumer, SessionState
from .debounce import Debouncer
from .recent_files import RecentFiles

__all__: list[str] = [
    "Debouncer",
    "GenerationSessionController",
    "RecentFiles",
    "SessionConsumer",
    "SessionState",
]
