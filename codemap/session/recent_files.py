from __future__ import annotations

from codemap.core.config.generation_config import RECENT_FILES_LIMIT


class RecentFiles:
    """Most-recent-first list of touched file paths, deduplicated and capped."""

    def __init__(self, limit: int = RECENT_FILES_LIMIT) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self._limit = limit
        self._paths: list[str] = []

    def __len__(self) -> int:
        return len(self._paths)

    def touch(self, path: str) -> None:
        if path in self._paths:
            self._paths.remove(path)
        self._paths.insert(0, path)
        del self._paths[self._limit :]

    def recent(self, count: int | None = None) -> list[str]:
        if count is None:
            return list(self._paths)
        return self._paths[:count]

    def clear(self) -> None:
        self._paths.clear()
