"""Key-value slot protocols and the local file-backed store."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol


class StorageError(RuntimeError):
    """Raised when a key-value slot cannot be read or written."""


class KeyValueStore(Protocol):
    """Minimal slot API the persistence gateway relies on."""

    def get(self, key: str) -> bytes | None:
        ...

    def set(self, key: str, data: bytes) -> None:
        ...


class SyncedKeyValueStore(KeyValueStore, Protocol):
    """A key-value slot replicated elsewhere on a best-effort basis."""

    def synchronize(self) -> None:
        ...


class FileKeyValueStore:
    """Durable device-local slots, one file per key."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise StorageError(f"Invalid storage key {key!r}")
        return self._root / f"{key}.json"

    def get(self, key: str) -> bytes | None:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def set(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc


__all__ = ["FileKeyValueStore", "KeyValueStore", "StorageError", "SyncedKeyValueStore"]
