"""Supabase implementation of the per-user cloud collections."""

from dataclasses import dataclass

from supabase import Client

from recipe_snap.services.remote_store import FAVORITES, SEARCH_HISTORY, RemoteStore

_USER_TABLES = frozenset({FAVORITES, SEARCH_HISTORY})


@dataclass
class SupabaseRemoteStore(RemoteStore):
    """Supabase-backed store for favorites, search history and profiles."""

    client: Client

    def get_user_records(
        self, kind: str, user_id: str, limit: int | None = None
    ) -> list[dict[str, object]]:
        """Return a user's rows for a collection, newest first."""
        query = (
            self.client.table(_table(kind))
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
        )
        if limit is not None:
            query = query.limit(limit)
        response = query.execute()
        return list(response.data or [])

    def upsert_user_record(
        self,
        kind: str,
        user_id: str,
        record: dict[str, object],
        conflict_key: str | None,
    ) -> None:
        """Insert a row, or upsert on `conflict_key` when given."""
        payload = {"user_id": user_id, **record}
        table = self.client.table(_table(kind))
        if conflict_key:
            table.upsert(payload, on_conflict=conflict_key).execute()
        else:
            table.insert(payload).execute()

    def delete_user_record(
        self, kind: str, user_id: str, match: dict[str, object]
    ) -> None:
        """Delete a user's rows whose columns equal `match`."""
        query = self.client.table(_table(kind)).delete().eq("user_id", user_id)
        for column, value in match.items():
            query = query.eq(column, value)
        query.execute()

    def prune_user_records(self, kind: str, user_id: str, keep: int) -> int:
        """Delete all but the newest `keep` rows."""
        response = (
            self.client.table(_table(kind))
            .select("id, created_at")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        rows = response.data or []
        if len(rows) <= keep:
            return 0
        stale_ids = [row["id"] for row in rows[keep:]]
        self.client.table(_table(kind)).delete().in_("id", stale_ids).execute()
        return len(stale_ids)

    def get_profile(self, user_id: str) -> dict[str, object] | None:
        """Return the profile row, if present."""
        response = (
            self.client.table("profiles").select("*").eq("id", user_id).limit(1).execute()
        )
        if not response.data:
            return None
        return response.data[0]

    def update_profile(self, user_id: str, fields: dict[str, object]) -> None:
        """Update columns on the profile row."""
        self.client.table("profiles").update(fields).eq("id", user_id).execute()

    def list_transactions(self, user_id: str, kind: str) -> list[dict[str, object]]:
        """Return ledger transactions of a type, newest first."""
        response = (
            self.client.table("transactions")
            .select("*")
            .eq("user_id", user_id)
            .eq("type", kind)
            .order("created_at", desc=True)
            .execute()
        )
        return list(response.data or [])


def _table(kind: str) -> str:
    if kind not in _USER_TABLES:
        raise ValueError(f"Unknown record kind: {kind}")
    return kind
