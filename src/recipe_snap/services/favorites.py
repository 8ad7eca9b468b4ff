"""Favorite recipes, kept on the device and mirrored to the cloud."""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from recipe_snap.domain.errors import SyncError
from recipe_snap.domain.recipes import Favorite, now_ms, parse_timestamp_ms
from recipe_snap.services.auth import AuthSession, LoginWatcher
from recipe_snap.services.local_store import LocalStore, load_list
from recipe_snap.services.reconciliation import Reconciler
from recipe_snap.services.remote_store import FAVORITES, RemoteStore

_logger = logging.getLogger(__name__)

STORAGE_KEY = "recipesnap_favorites"
CONFLICT_KEY = "user_id,recipe_name"


@dataclass
class FavoritesService:
    """Owns the favorites list and its storage namespace."""

    auth: AuthSession
    local_store: LocalStore | None
    remote_store: RemoteStore | None = None
    clock: Callable[[], int] = now_ms
    favorites: list[Favorite] = field(default_factory=list)
    _initialized: bool = False
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    _reconciler: Reconciler[Favorite] = field(
        default_factory=lambda: Reconciler(
            name="favorites",
            key_fn=lambda favorite: favorite.name,
            recency_fn=lambda favorite: favorite.saved_at,
        )
    )

    async def init(self) -> None:
        """Load local favorites and merge with the cloud on every login."""
        if self._initialized:
            return
        self._initialized = True
        self.favorites = [
            Favorite.from_dict(item) for item in load_list(self.local_store, STORAGE_KEY)
        ]
        watcher = LoginWatcher(self.merge_with_cloud)
        self.auth.subscribe(watcher)
        if self.auth.is_logged_in:
            await watcher(self.auth.user_id)

    def is_favorite(self, recipe: Mapping[str, object]) -> bool:
        name = recipe.get("name")
        return any(favorite.name == name for favorite in self.favorites)

    async def toggle_favorite(self, recipe: Mapping[str, object]) -> bool:
        """Add or remove a recipe and return whether it is now a favorite.

        Waits for a running cloud merge so the merged list cannot overwrite
        the change.
        """
        async with self._lock:
            return await self._toggle(recipe)

    async def merge_with_cloud(self, user_id: str | None = None) -> None:
        """Union local favorites with the cloud copy, pushing local-only ones."""
        if self.remote_store is None or not self.auth.is_logged_in:
            return
        async with self._lock:
            try:
                merged = await self._reconciler.reconcile(
                    list(self.favorites), self._fetch_from_cloud, self._add_to_cloud
                )
            except SyncError:
                _logger.exception("Favorites sync error")
                return
            self.favorites = merged
            self._save_local()

    async def _toggle(self, recipe: Mapping[str, object]) -> bool:
        name = str(recipe.get("name", ""))
        index = next(
            (i for i, favorite in enumerate(self.favorites) if favorite.name == name),
            None,
        )
        if index is not None:
            self.favorites.pop(index)
            self._save_local()
            if self.auth.is_logged_in:
                await self._remove_from_cloud_safely(name)
            return False

        favorite = Favorite.from_recipe(recipe, saved_at=self.clock())
        self.favorites.insert(0, favorite)
        self._save_local()
        if self.auth.is_logged_in:
            try:
                await self._add_to_cloud(favorite)
            except Exception:
                _logger.exception("Failed to save favorite %s", name)
        return True

    async def _fetch_from_cloud(self) -> list[Favorite]:
        if self.remote_store is None or self.auth.user_id is None:
            return []
        rows = await asyncio.to_thread(
            self.remote_store.get_user_records, FAVORITES, self.auth.user_id
        )
        favorites: list[Favorite] = []
        for row in rows:
            recipe = row.get("recipe_data")
            if not isinstance(recipe, dict):
                continue
            recipe = {"name": row.get("recipe_name"), **recipe}
            favorites.append(
                Favorite.from_recipe(
                    recipe, saved_at=parse_timestamp_ms(row.get("created_at"))
                )
            )
        return favorites

    async def _add_to_cloud(self, favorite: Favorite) -> None:
        if self.remote_store is None or self.auth.user_id is None:
            return
        record = {
            "recipe_name": favorite.name,
            "recipe_data": favorite.recipe,
            "created_at": datetime.fromtimestamp(
                favorite.saved_at / 1000, tz=UTC
            ).isoformat(),
        }
        await asyncio.to_thread(
            self.remote_store.upsert_user_record,
            FAVORITES,
            self.auth.user_id,
            record,
            CONFLICT_KEY,
        )

    async def _remove_from_cloud_safely(self, name: str) -> None:
        if self.remote_store is None or self.auth.user_id is None:
            return
        try:
            await asyncio.to_thread(
                self.remote_store.delete_user_record,
                FAVORITES,
                self.auth.user_id,
                {"recipe_name": name},
            )
        except Exception:
            _logger.exception("Failed to remove favorite %s", name)

    def _save_local(self) -> None:
        if self.local_store is None:
            return
        self.local_store.set(
            STORAGE_KEY, [favorite.to_dict() for favorite in self.favorites]
        )
