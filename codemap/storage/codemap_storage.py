"""Persistence for generated codemaps.

Each codemap is written as one pretty-printed JSON file named
``<title-slug>-<UTC timestamp>.json`` inside a storage directory. Files are
addressed by bare filename; path separators are rejected.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from loguru import logger

from codemap.core.models import Codemap
from codemap.utils.text import slugify_kebab

_SLUG_MAX_LENGTH = 60


class CodemapStorageError(RuntimeError):
    """Raised when a codemap cannot be written to the store."""


@dataclass(frozen=True)
class StoredCodemap:
    filename: str
    codemap: Codemap


class CodemapStore(Protocol):
    """What the session controller needs from a codemap store."""

    def save(self, codemap: Codemap) -> Path: ...

    def list(self) -> list[StoredCodemap]: ...

    def load(self, filename: str) -> Codemap | None: ...

    def delete(self, filename: str) -> bool: ...


class JsonCodemapStore:
    """Stores codemaps as JSON files in ``directory``."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory.expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, filename: str) -> Path:
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise ValueError(f"Invalid codemap filename: {filename!r}")
        return self._directory / filename

    def save(self, codemap: Codemap) -> Path:
        """Write ``codemap`` and stamp its ``saved_at``; returns the file path."""
        now = datetime.now(timezone.utc)
        slug = slugify_kebab(codemap.title, max_length=_SLUG_MAX_LENGTH)
        stem = f"{slug}-{now:%Y%m%d-%H%M%S}"

        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path = self._directory / f"{stem}.json"
            counter = 2
            while path.exists():
                path = self._directory / f"{stem}-{counter}.json"
                counter += 1

            payload = codemap.to_dict()
            payload["savedAt"] = now.isoformat()
            path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            raise CodemapStorageError(
                f"Failed to save codemap to {self._directory}: {exc}"
            ) from exc

        codemap.saved_at = payload["savedAt"]
        logger.info(f"Saved codemap {codemap.title!r} to {path}")
        return path

    def _read(self, path: Path) -> Codemap | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Codemap.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning(f"Skipping unreadable codemap file {path.name}: {exc}")
            return None

    def list(self) -> list[StoredCodemap]:
        """Every readable stored codemap, newest first."""
        if not self._directory.is_dir():
            return []

        stored: list[StoredCodemap] = []
        for path in self._directory.glob("*.json"):
            codemap = self._read(path)
            if codemap is not None:
                stored.append(StoredCodemap(filename=path.name, codemap=codemap))

        stored.sort(key=lambda item: (item.codemap.saved_at or "", item.filename), reverse=True)
        return stored

    def load(self, filename: str) -> Codemap | None:
        path = self._path_for(filename)
        if not path.is_file():
            return None
        return self._read(path)

    def delete(self, filename: str) -> bool:
        path = self._path_for(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.error(f"Failed to delete codemap {filename}: {exc}")
            return False
        logger.info(f"Deleted codemap {filename}")
        return True
