"""User settings, local-first with the profile as source of truth."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import ValidationError

from recipe_snap.domain.generation import RecipeConstraints
from recipe_snap.domain.settings import SettingsBlob
from recipe_snap.services.auth import AuthSession, LoginWatcher
from recipe_snap.services.local_store import LocalStore
from recipe_snap.services.remote_store import RemoteStore

_logger = logging.getLogger(__name__)

STORAGE_KEYS: dict[str, str] = {
    "dark_mode": "recipesnap_darkmode",
    "servings": "recipesnap_servings",
    "dietary_filters": "recipesnap_filters",
    "max_time": "recipesnap_maxtime",
    "language": "recipesnap_language",
}


@dataclass
class UserSettingsService:
    """Owns the settings blob and the per-field storage keys."""

    auth: AuthSession
    local_store: LocalStore | None
    remote_store: RemoteStore | None = None
    settings: SettingsBlob = field(default_factory=SettingsBlob)
    _initialized: bool = False
    _syncing: bool = False

    async def init(self) -> None:
        """Load local settings and pull cloud settings on every login."""
        if self._initialized:
            return
        self._initialized = True
        self._load_local()
        watcher = LoginWatcher(self.load_from_cloud)
        self.auth.subscribe(watcher)
        if self.auth.is_logged_in:
            await watcher(self.auth.user_id)

    async def update(self, **changes: object) -> SettingsBlob:
        """Apply a local change, persist it, and push it when signed in.

        Raises pydantic.ValidationError for out-of-range values.
        """
        merged = {**self.settings.model_dump(), **changes}
        updated = SettingsBlob.model_validate(merged)
        if updated == self.settings:
            return self.settings
        self.settings = updated
        self._save_local()
        if self.auth.is_logged_in:
            await self.sync_to_cloud()
        return self.settings

    async def sync_to_cloud(self) -> bool:
        """Write the full settings object to the profile.

        Returns False without writing when a write is already in flight.
        """
        if self.remote_store is None or self.auth.user_id is None or self._syncing:
            return False
        self._syncing = True
        try:
            await asyncio.to_thread(
                self.remote_store.update_profile,
                self.auth.user_id,
                {
                    "settings": self.settings.to_json(),
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
            )
        except Exception:
            _logger.exception("Settings sync error")
            return False
        finally:
            self._syncing = False
        return True

    async def load_from_cloud(self, user_id: str | None = None) -> None:
        """Adopt cloud settings, or seed the cloud from local ones."""
        if self.remote_store is None or self.auth.user_id is None:
            return
        try:
            row = await asyncio.to_thread(
                self.remote_store.get_profile, self.auth.user_id
            )
        except Exception:
            _logger.exception("Failed to load cloud settings")
            return
        remote = row.get("settings") if row else None
        if isinstance(remote, Mapping) and remote:
            self._apply(remote)
            self._save_local()
            return
        await self.sync_to_cloud()

    def constraints(self) -> RecipeConstraints:
        """Return the generation constraints implied by current settings."""
        return RecipeConstraints(
            dietary_filters=self.settings.dietary_filters.describe(),
            servings=self.settings.servings,
            max_time=self.settings.max_time,
            language=self.settings.language,
        )

    def _apply(self, data: Mapping[str, object]) -> None:
        """Copy recognised fields, skipping any that fail validation."""
        for name, info in SettingsBlob.model_fields.items():
            for key in (info.alias, name):
                if key and key in data:
                    self._set_field(name, data[key])
                    break

    def _set_field(self, name: str, value: object) -> None:
        try:
            setattr(self.settings, name, value)
        except ValidationError:
            _logger.warning("Ignoring invalid setting %s=%r", name, value)

    def _load_local(self) -> None:
        if self.local_store is None:
            return
        for name, key in STORAGE_KEYS.items():
            value = self.local_store.get(key)
            if value is not None:
                self._set_field(name, value)

    def _save_local(self) -> None:
        if self.local_store is None:
            return
        data = self.settings.to_json()
        for name, key in STORAGE_KEYS.items():
            alias = SettingsBlob.model_fields[name].alias or name
            self.local_store.set(key, data[alias])
