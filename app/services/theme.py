from __future__ import annotations

from app.clients.storage import KeyValueStore
from app.core.exceptions import StorageUnavailableError
from app.core.logging import get_logger
from app.schemas.enums import Theme

logger = get_logger(__name__)


class ThemePreference:
    """Light/dark display preference. Storage errors fall back to the in-memory value."""

    def __init__(self, store: KeyValueStore, key: str, default: Theme = Theme.LIGHT) -> None:
        self._store = store
        self._key = key
        self._current = default
        self._loaded = False

    def get(self) -> Theme:
        if not self._loaded:
            self._loaded = True
            try:
                stored = self._store.get_item(self._key)
            except StorageUnavailableError:
                logger.warning("theme_read_failed", exc_info=True)
                stored = None
            if stored in (Theme.LIGHT.value, Theme.DARK.value):
                self._current = Theme(stored)
        return self._current

    def toggle(self) -> tuple[Theme, bool]:
        """Flip the theme. Returns the new theme and whether it was persisted."""
        self._current = Theme.LIGHT if self.get() is Theme.DARK else Theme.DARK
        try:
            self._store.set_item(self._key, self._current.value)
        except StorageUnavailableError:
            logger.warning("theme_write_failed", exc_info=True)
            return self._current, False
        return self._current, True
