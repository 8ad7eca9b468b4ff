"""Persistence interface for per-user cloud collections."""

from typing import Protocol

FAVORITES = "favorites"
SEARCH_HISTORY = "search_history"


class RemoteStore(Protocol):
    """Cloud-side storage for a user's collections and profile."""

    def get_user_records(
        self, kind: str, user_id: str, limit: int | None = None
    ) -> list[dict[str, object]]:
        """Return a user's rows for a collection, newest first."""

    def upsert_user_record(
        self,
        kind: str,
        user_id: str,
        record: dict[str, object],
        conflict_key: str | None,
    ) -> None:
        """Insert a row, or update it when `conflict_key` columns already match."""

    def delete_user_record(
        self, kind: str, user_id: str, match: dict[str, object]
    ) -> None:
        """Delete a user's rows whose columns equal `match`."""

    def prune_user_records(self, kind: str, user_id: str, keep: int) -> int:
        """Delete all but the newest `keep` rows and return how many were removed."""

    def get_profile(self, user_id: str) -> dict[str, object] | None:
        """Return the profile row, if present."""

    def update_profile(self, user_id: str, fields: dict[str, object]) -> None:
        """Update columns on the profile row."""

    def list_transactions(self, user_id: str, kind: str) -> list[dict[str, object]]:
        """Return ledger transactions of a type, newest first."""
