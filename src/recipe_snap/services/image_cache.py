"""Bounded cache of rendered recipe images."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from recipe_snap.domain.recipes import now_ms
from recipe_snap.services.local_store import LocalStore

_logger = logging.getLogger(__name__)

KEY_PREFIX = "recipesnap_images:"
MAX_ENTRIES = 50


@dataclass
class ImageCache:
    """Best-effort image store keyed by recipe name.

    Every storage failure is swallowed: a miss only means the image is
    rendered again.
    """

    store: LocalStore | None
    max_entries: int = MAX_ENTRIES
    clock: Callable[[], int] = now_ms

    def get(self, recipe_name: str) -> str | None:
        """Return the cached data URL, if present."""
        if self.store is None:
            return None
        try:
            entry = self.store.get(KEY_PREFIX + recipe_name)
        except Exception:
            _logger.debug("Image cache read failed", exc_info=True)
            return None
        if isinstance(entry, dict) and isinstance(entry.get("dataUrl"), str):
            return entry["dataUrl"]
        return None

    def put(self, recipe_name: str, data_url: str) -> None:
        """Store a data URL and evict the oldest entries beyond the ceiling."""
        if self.store is None:
            return
        try:
            self.store.set(
                KEY_PREFIX + recipe_name,
                {"key": recipe_name, "dataUrl": data_url, "timestamp": self.clock()},
            )
        except Exception:
            _logger.debug("Image cache write failed", exc_info=True)
            return
        self.cleanup()

    def cleanup(self) -> int:
        """Delete oldest-by-insertion entries until at the ceiling."""
        if self.store is None:
            return 0
        try:
            keys = self.store.keys(KEY_PREFIX)
            excess = len(keys) - self.max_entries
            if excess <= 0:
                return 0
            stamped = sorted(keys, key=self._timestamp_of)
            for key in stamped[:excess]:
                self.store.remove(key)
        except Exception:
            _logger.debug("Image cache cleanup failed", exc_info=True)
            return 0
        return excess

    def _timestamp_of(self, key: str) -> int:
        entry = self.store.get(key) if self.store is not None else None
        if isinstance(entry, dict) and isinstance(entry.get("timestamp"), int):
            return entry["timestamp"]
        return 0
