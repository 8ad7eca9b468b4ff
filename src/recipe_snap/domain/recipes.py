"""Domain models for favorites and search history."""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

TRANSIENT_FIELDS = frozenset({"imageUrl", "imageLoading", "imageLoaded"})


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return int(datetime.now(tz=UTC).timestamp() * 1000)


def parse_timestamp_ms(raw: object) -> int:
    """Parse an ISO timestamp or a number into epoch milliseconds.

    Anything unreadable counts as 0, the oldest possible time.
    """
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int | float):
        return int(raw) if math.isfinite(raw) else 0
    if isinstance(raw, str) and raw:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return 0
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return int(parsed.timestamp() * 1000)
    return 0


def strip_transient(recipe: Mapping[str, object]) -> dict[str, object]:
    """Drop display-only image fields from a recipe record."""
    return {key: value for key, value in recipe.items() if key not in TRANSIENT_FIELDS}


def ingredients_signature(ingredients: Iterable[str]) -> str:
    """Return the order-sensitive de-duplication key for an ingredient list."""
    return ",".join(ingredients)


@dataclass(frozen=True)
class Favorite:
    """A saved recipe, unique per name."""

    name: str
    recipe: dict[str, object]
    saved_at: int

    @classmethod
    def from_recipe(cls, recipe: Mapping[str, object], saved_at: int) -> "Favorite":
        """Build a favorite from a recipe record, stripping transient fields."""
        cleaned = strip_transient(recipe)
        cleaned.pop("savedAt", None)
        return cls(name=str(cleaned.get("name", "")), recipe=cleaned, saved_at=saved_at)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Favorite":
        """Parse the locally persisted shape."""
        return cls.from_recipe(data, saved_at=parse_timestamp_ms(data.get("savedAt")))

    def to_dict(self) -> dict[str, object]:
        """Return the JSON shape written to local storage."""
        return {**self.recipe, "name": self.name, "savedAt": self.saved_at}


@dataclass(frozen=True)
class HistoryEntry:
    """A past search: the ingredients used and the recipes suggested."""

    id: int
    ingredients: tuple[str, ...]
    recipes: tuple[dict[str, object], ...]
    timestamp: int

    @property
    def signature(self) -> str:
        return ingredients_signature(self.ingredients)

    @property
    def recency(self) -> int:
        return self.timestamp or self.id

    @classmethod
    def create(
        cls,
        ingredients: Iterable[str],
        recipes: Iterable[Mapping[str, object]],
        timestamp: int,
    ) -> "HistoryEntry":
        """Create a new entry stamped with the given time."""
        return cls(
            id=timestamp,
            ingredients=tuple(ingredients),
            recipes=tuple(strip_transient(recipe) for recipe in recipes),
            timestamp=timestamp,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "HistoryEntry":
        """Parse the locally persisted shape."""
        raw_ingredients = data.get("ingredients") or []
        raw_recipes = data.get("recipes") or []
        timestamp = parse_timestamp_ms(data.get("timestamp"))
        return cls(
            id=parse_timestamp_ms(data.get("id")) or timestamp,
            ingredients=tuple(str(item) for item in raw_ingredients),
            recipes=tuple(
                strip_transient(recipe)
                for recipe in raw_recipes
                if isinstance(recipe, Mapping)
            ),
            timestamp=timestamp,
        )

    def to_dict(self) -> dict[str, object]:
        """Return the JSON shape written to local storage."""
        return {
            "id": self.id,
            "ingredients": list(self.ingredients),
            "recipes": [dict(recipe) for recipe in self.recipes],
            "timestamp": self.timestamp,
        }
