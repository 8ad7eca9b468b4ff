"""Directory-backed device store with one JSON file per key."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote

from recipe_snap.adapters.json_file_store import write_json_atomically
from recipe_snap.services.local_store import LocalStore

_logger = logging.getLogger(__name__)

_SUFFIX = ".json"


@dataclass
class JsonDirectoryLocalStore(LocalStore):
    """Keeps each key in its own file, so a write touches only that key.

    Suited to large values such as cached images.
    """

    directory: Path

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)

    def get(self, key: str) -> object | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            _logger.warning("Ignoring unreadable entry %s in %s", key, self.directory)
            return None

    def set(self, key: str, value: object) -> None:
        write_json_atomically(self._path(key), value)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self, prefix: str = "") -> list[str]:
        """Return stored keys starting with a prefix."""
        if not self.directory.is_dir():
            return []
        stored = (
            unquote(path.name[: -len(_SUFFIX)])
            for path in self.directory.glob(f"*{_SUFFIX}")
        )
        return sorted(key for key in stored if key.startswith(prefix))

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{_SUFFIX}"
