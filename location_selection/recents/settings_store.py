"""Byte-level key/value stores backing the recents record."""

import os
import tempfile
from pathlib import Path
from typing import Protocol

from loguru import logger

from location_selection.recents.errors import NotFoundError, StoreIOError
from location_selection.settings import settings

logger = logger.bind(topic="settings_store")


class SettingsStore(Protocol):
    def read(self, key: str) -> bytes:
        """Return the bytes stored under key, raise NotFoundError if there are none."""
        ...

    def write(self, data: bytes, key: str) -> None: ...


class InMemorySettingsStore:
    def __init__(self, values: dict[str, bytes] | None = None):
        self.values: dict[str, bytes] = dict(values or {})
        self.writes = 0

    def read(self, key: str) -> bytes:
        if key not in self.values:
            raise NotFoundError(key)
        return self.values[key]

    def write(self, data: bytes, key: str) -> None:
        self.values[key] = data
        self.writes += 1


class FileSettingsStore:
    """One file per key in a directory. Writes replace the file atomically."""

    def __init__(self, directory: Path | None = None):
        self.directory = directory or settings.recents_store_dir

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(key)
        except OSError as e:
            raise StoreIOError(f"Failed to read {path}: {e}") from e

    def write(self, data: bytes, key: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.")
        except OSError as e:
            raise StoreIOError(f"Failed to write {path}: {e}") from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            Path(tmp_path).unlink(missing_ok=True)
            raise StoreIOError(f"Failed to write {path}: {e}") from e
        logger.debug("Wrote settings", key=key, size=len(data))
