"""Recent searches, capped on the device and in the cloud."""

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from recipe_snap.domain.errors import SyncError
from recipe_snap.domain.recipes import HistoryEntry, now_ms, parse_timestamp_ms
from recipe_snap.services.auth import AuthSession, LoginWatcher
from recipe_snap.services.local_store import LocalStore, load_list
from recipe_snap.services.reconciliation import Reconciler
from recipe_snap.services.remote_store import SEARCH_HISTORY, RemoteStore

_logger = logging.getLogger(__name__)

STORAGE_KEY = "recipesnap_history"
MAX_LOCAL = 3
MAX_CLOUD = 10


@dataclass
class SearchHistoryService:
    """Owns the search history list and its storage namespace.

    Up to MAX_CLOUD entries are kept in memory and in the cloud; only the
    newest MAX_LOCAL are written to device storage.
    """

    auth: AuthSession
    local_store: LocalStore | None
    remote_store: RemoteStore | None = None
    clock: Callable[[], int] = now_ms
    entries: list[HistoryEntry] = field(default_factory=list)
    _initialized: bool = False
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    _reconciler: Reconciler[HistoryEntry] = field(
        default_factory=lambda: Reconciler(
            name="search history",
            key_fn=lambda entry: entry.signature,
            recency_fn=lambda entry: entry.recency,
            capacity=MAX_CLOUD,
        )
    )

    async def init(self) -> None:
        """Load local history and merge with the cloud on every login."""
        if self._initialized:
            return
        self._initialized = True
        self.entries = [
            HistoryEntry.from_dict(item)
            for item in load_list(self.local_store, STORAGE_KEY)
        ][:MAX_CLOUD]
        watcher = LoginWatcher(self.merge_with_cloud)
        self.auth.subscribe(watcher)
        if self.auth.is_logged_in:
            await watcher(self.auth.user_id)

    async def add_to_history(
        self, ingredients: Iterable[str], recipes: Iterable[Mapping[str, object]]
    ) -> HistoryEntry | None:
        """Record a search, replacing any earlier one with the same ingredients."""
        ingredients = list(ingredients)
        recipes = list(recipes)
        if not ingredients or not recipes:
            return None

        async with self._lock:
            entry = HistoryEntry.create(ingredients, recipes, timestamp=self.clock())
            remaining = [
                item for item in self.entries if item.signature != entry.signature
            ]
            self.entries = [entry, *remaining][:MAX_CLOUD]
            self._save_local()

            if self.auth.is_logged_in:
                try:
                    await self._add_to_cloud(entry)
                except Exception:
                    _logger.exception("Failed to save search history")
        return entry

    async def merge_with_cloud(self, user_id: str | None = None) -> None:
        """Union local history with the cloud copy, pushing local-only searches.

        Holds the same lock as add_to_history, so a search recorded during the
        fetch lands after the merged list is installed.
        """
        if self.remote_store is None or not self.auth.is_logged_in:
            return
        async with self._lock:
            try:
                merged = await self._reconciler.reconcile(
                    list(self.entries), self._fetch_from_cloud, self._add_to_cloud
                )
            except SyncError:
                _logger.exception("History sync error")
                return
            self.entries = merged
            self._save_local()

    async def _fetch_from_cloud(self) -> list[HistoryEntry]:
        if self.remote_store is None or self.auth.user_id is None:
            return []
        rows = await asyncio.to_thread(
            self.remote_store.get_user_records,
            SEARCH_HISTORY,
            self.auth.user_id,
            MAX_CLOUD,
        )
        entries: list[HistoryEntry] = []
        seen: set[str] = set()
        for row in rows:
            created_at = parse_timestamp_ms(row.get("created_at"))
            entry = HistoryEntry.from_dict(
                {
                    "id": created_at,
                    "ingredients": row.get("ingredients"),
                    "recipes": row.get("recipes"),
                    "timestamp": created_at,
                }
            )
            # rows arrive newest first; older duplicates are shadowed
            if entry.signature in seen:
                continue
            seen.add(entry.signature)
            entries.append(entry)
        return entries

    async def _add_to_cloud(self, entry: HistoryEntry) -> None:
        if self.remote_store is None or self.auth.user_id is None:
            return
        user_id = self.auth.user_id
        record = {
            "ingredients": list(entry.ingredients),
            "recipes": [dict(recipe) for recipe in entry.recipes],
            "created_at": datetime.fromtimestamp(
                entry.recency / 1000, tz=UTC
            ).isoformat(),
        }
        await asyncio.to_thread(
            self.remote_store.upsert_user_record, SEARCH_HISTORY, user_id, record, None
        )
        await self._cleanup_old(user_id)

    async def _cleanup_old(self, user_id: str) -> None:
        if self.remote_store is None:
            return
        removed = await asyncio.to_thread(
            self.remote_store.prune_user_records, SEARCH_HISTORY, user_id, MAX_CLOUD
        )
        if removed:
            _logger.info("Pruned %s old search history rows", removed)

    def _save_local(self) -> None:
        if self.local_store is None:
            return
        self.local_store.set(
            STORAGE_KEY, [entry.to_dict() for entry in self.entries[:MAX_LOCAL]]
        )
