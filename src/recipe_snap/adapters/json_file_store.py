"""JSON-file implementation of the device store."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from recipe_snap.services.local_store import LocalStore

_logger = logging.getLogger(__name__)


@dataclass
class JsonFileLocalStore(LocalStore):
    """Keeps every key in one JSON document, rewritten atomically on change."""

    path: Path
    _values: dict[str, object] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self._values = self._read()

    def get(self, key: str) -> object | None:
        """Return the stored value for a key, if present."""
        value = self._values.get(key)
        if value is None:
            return None
        return json.loads(json.dumps(value))

    def set(self, key: str, value: object) -> None:
        """Store a value and flush the file."""
        self._values[key] = json.loads(json.dumps(value))
        self._flush()

    def remove(self, key: str) -> None:
        """Delete a key and flush the file."""
        if self._values.pop(key, None) is not None:
            self._flush()

    def keys(self, prefix: str = "") -> list[str]:
        """Return stored keys starting with a prefix."""
        return [key for key in self._values if key.startswith(prefix)]

    def _read(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            _logger.warning("Ignoring unreadable local store at %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        write_json_atomically(self.path, self._values)


def write_json_atomically(path: Path, value: object) -> None:
    """Write JSON to a temporary sibling file and move it over `path`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(value, handle)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
