"""Deciding whether an action may run and which allowance pays for it."""

import asyncio
import logging
from dataclasses import dataclass

from recipe_snap.domain.entitlements import ConsumptionResult, CreditSource
from recipe_snap.domain.errors import (
    CapabilityUnavailable,
    LoginRequired,
    NoCreditsRemaining,
    TransportError,
)
from recipe_snap.services.auth import AuthSession
from recipe_snap.services.billing import CreditDebiter
from recipe_snap.services.local_store import LocalStore, load_int

_logger = logging.getLogger(__name__)

STORAGE_KEY = "recipesnap_free_snaps"


@dataclass
class EntitlementResolver:
    """Gatekeeper for paid actions.

    Free uses are counted on the device and spent first. After that a signed-in
    user spends subscription credits (while the subscription is active or
    canceled-but-not-expired), then one-time credits. Remote debits are a single
    conditional decrement on the ledger; a `False` result means someone else
    spent the last credit first.
    """

    auth: AuthSession
    local_store: LocalStore | None
    ledger: CreditDebiter | None = None
    free_uses_limit: int = 10
    limit_uses: bool = True
    _free_uses_used: int | None = None

    @property
    def free_uses_used(self) -> int:
        if self._free_uses_used is None:
            self._free_uses_used = max(0, load_int(self.local_store, STORAGE_KEY))
        return self._free_uses_used

    @property
    def free_uses_remaining(self) -> int:
        return max(0, self.free_uses_limit - self.free_uses_used)

    @property
    def total_credits(self) -> int:
        return self.auth.subscription_credits + self.auth.credits

    @property
    def needs_login(self) -> bool:
        if not self.limit_uses:
            return False
        return self.free_uses_remaining <= 0 and not self.auth.is_logged_in

    @property
    def needs_credits(self) -> bool:
        if not self.limit_uses:
            return False
        return (
            self.free_uses_remaining <= 0
            and self.auth.is_logged_in
            and self.total_credits <= 0
        )

    def can_perform_action(self) -> bool:
        """Return True when `resolve_consumption` has a balance to try."""
        return self._pick_source() is not None

    async def resolve_consumption(self) -> ConsumptionResult:
        """Spend one action's worth of entitlement."""
        source = self._pick_source()
        if source is CreditSource.UNLIMITED:
            return ConsumptionResult(success=True, source=source)
        if source is CreditSource.FREE:
            self._record_free_use()
            return ConsumptionResult(success=True, source=source)
        if not self.auth.is_logged_in:
            return ConsumptionResult(success=False, error=LoginRequired())
        if source is None:
            return ConsumptionResult(success=False, error=NoCreditsRemaining())
        return await self._debit(source)

    def _pick_source(self) -> CreditSource | None:
        if not self.limit_uses:
            return CreditSource.UNLIMITED
        if self.free_uses_remaining > 0:
            return CreditSource.FREE
        if not self.auth.is_logged_in:
            return None
        if self.auth.has_active_subscription and self.auth.subscription_credits > 0:
            return CreditSource.SUBSCRIPTION
        if self.auth.credits > 0:
            return CreditSource.ONE_TIME
        return None

    def _record_free_use(self) -> None:
        self._free_uses_used = self.free_uses_used + 1
        if self.local_store is not None:
            self.local_store.set(STORAGE_KEY, self._free_uses_used)

    async def _debit(self, source: CreditSource) -> ConsumptionResult:
        if self.ledger is None or self.auth.user_id is None:
            return ConsumptionResult(
                success=False,
                error=CapabilityUnavailable("Credit ledger not configured"),
            )
        try:
            debited = await asyncio.to_thread(
                self.ledger.debit_credit, self.auth.user_id
            )
        except Exception as exc:
            _logger.exception("Credit debit failed")
            return ConsumptionResult(success=False, error=TransportError(str(exc)))
        if not debited:
            return ConsumptionResult(success=False, error=NoCreditsRemaining())

        try:
            await self.auth.fetch_profile()
        except Exception:
            _logger.exception("Failed to refresh profile after debit")
        return ConsumptionResult(success=True, source=source)
