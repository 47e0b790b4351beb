"""Codemap persistence."""

from .codemap_storage import (
    CodemapStorageError,
    CodemapStore,
    JsonCodemapStore,
    StoredCodemap,
)

__all__: list[str] = [
    "CodemapStorageError",
    "CodemapStore",
    "JsonCodemapStore",
    "StoredCodemap",
]
