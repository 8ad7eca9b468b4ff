"""Key-scoped device storage abstractions."""

import copy
from dataclasses import dataclass
from typing import Protocol


class LocalStore(Protocol):
    """Durable key-value storage for JSON-serializable values."""

    def get(self, key: str) -> object | None:
        """Return the stored value for a key, if present."""

    def set(self, key: str, value: object) -> None:
        """Store a value, replacing any previous one."""

    def remove(self, key: str) -> None:
        """Delete a key if present."""

    def keys(self, prefix: str = "") -> list[str]:
        """Return stored keys starting with a prefix."""


@dataclass
class InMemoryLocalStore(LocalStore):
    """Process-local store used when no device storage is configured."""

    _values: dict[str, object]

    def __init__(self, values: dict[str, object] | None = None) -> None:
        self._values = dict(values or {})

    def get(self, key: str) -> object | None:
        """Return a copy of the stored value."""
        value = self._values.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: object) -> None:
        """Store a copy of the value."""
        self._values[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        """Delete a key if present."""
        self._values.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        """Return stored keys starting with a prefix."""
        return [key for key in self._values if key.startswith(prefix)]


def load_int(store: LocalStore | None, key: str, default: int = 0) -> int:
    """Read an integer value, tolerating missing or corrupt data."""
    if store is None:
        return default
    raw = store.get(key)
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw)
    return default


def load_list(store: LocalStore | None, key: str) -> list[dict[str, object]]:
    """Read a list of objects, dropping anything that is not a dict."""
    if store is None:
        return []
    raw = store.get(key)
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict)]
