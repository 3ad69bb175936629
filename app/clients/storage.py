from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from app.core.exceptions import StorageUnavailableError
from app.core.logging import get_logger

logger = get_logger(__name__)

_CHECK_KEY = "__storage_check__"


class KeyValueStore(Protocol):
    """Durable string key-value storage, the process-side analogue of browser local storage.

    Every method may raise StorageUnavailableError.
    """

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryStore:
    """Non-durable store. Used when no storage path is configured, and in tests."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore:
    """Store backed by a single JSON object on disk.

    Writes go through a temp file and os.replace so a crash never leaves a
    half-written file. The file is re-read on every access: other processes
    sharing the same path see each other's writes, with no locking.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageUnavailableError("Storage read failed", detail=str(exc)) from exc
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as exc:
            raise StorageUnavailableError("Storage file is corrupt", detail=str(exc)) from exc
        if not isinstance(data, dict):
            raise StorageUnavailableError("Storage file is corrupt", detail="not an object")
        return {str(k): str(v) for k, v in data.items()}

    def _dump(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".storage-")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self._path)
        except OSError as exc:
            raise StorageUnavailableError("Storage write failed", detail=str(exc)) from exc

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)

    def keys(self) -> list[str]:
        return list(self._load())


def storage_available(store: KeyValueStore) -> bool:
    """Check the store with a throwaway write and delete."""
    try:
        store.set_item(_CHECK_KEY, "1")
        store.remove_item(_CHECK_KEY)
    except StorageUnavailableError:
        logger.warning("storage_unavailable", exc_info=True)
        return False
    return True


def create_store(path: str) -> KeyValueStore:
    if not path:
        logger.info("storage_memory_only")
        return MemoryStore()
    store = JsonFileStore(path)
    if not storage_available(store):
        # Keep the file store anyway; callers tolerate every failure.
        logger.warning("storage_degraded", path=path)
    return store
