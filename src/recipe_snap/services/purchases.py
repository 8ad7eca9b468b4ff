"""Purchase history for the signed-in user."""

import asyncio
import logging
from dataclasses import dataclass, field

from recipe_snap.domain.entitlements import Purchase
from recipe_snap.services.auth import AuthSession
from recipe_snap.services.remote_store import RemoteStore

_logger = logging.getLogger(__name__)


@dataclass
class PurchaseHistoryService:
    """Lists completed credit-pack purchases."""

    auth: AuthSession
    remote_store: RemoteStore | None = None
    purchases: list[Purchase] = field(default_factory=list)

    async def fetch_purchases(self) -> list[Purchase]:
        """Reload purchases; empty when signed out or on failure."""
        if self.remote_store is None or self.auth.user_id is None:
            self.purchases = []
            return self.purchases
        try:
            rows = await asyncio.to_thread(
                self.remote_store.list_transactions, self.auth.user_id, "purchase"
            )
        except Exception:
            _logger.exception("Failed to fetch purchases")
            rows = []
        self.purchases = [Purchase.from_row(row) for row in rows]
        return self.purchases
