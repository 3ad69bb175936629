from __future__ import annotations

import time
from typing import Protocol

from app.clients.storage import KeyValueStore
from app.core.exceptions import StorageUnavailableError
from app.core.logging import get_logger

logger = get_logger(__name__)


class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    """Wall clock in milliseconds since epoch. Marks outlive the process, so no monotonic time."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class MarkStore:
    """Clock and durable slot for the session start mark.

    Reads return None and writes return False when storage fails; nothing here raises.
    """

    def __init__(self, store: KeyValueStore, key: str, clock: Clock | None = None) -> None:
        self._store = store
        self._key = key
        self._clock = clock or SystemClock()

    def now(self) -> int:
        return self._clock.now_ms()

    def read_mark(self) -> int | None:
        try:
            raw = self._store.get_item(self._key)
        except StorageUnavailableError:
            logger.warning("mark_read_failed", key=self._key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            value = int(raw)
        except ValueError:
            logger.warning("mark_unparsable", key=self._key, raw=raw)
            return None
        return value if value > 0 else None

    def write_mark(self, timestamp: int) -> bool:
        try:
            self._store.set_item(self._key, str(int(timestamp)))
        except StorageUnavailableError:
            logger.warning("mark_write_failed", key=self._key, exc_info=True)
            return False
        return True

    def clear_mark(self) -> bool:
        try:
            self._store.remove_item(self._key)
        except StorageUnavailableError:
            logger.warning("mark_clear_failed", key=self._key, exc_info=True)
            return False
        return True
