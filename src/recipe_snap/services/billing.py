"""Credit ledger interface and payment-event handling."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from recipe_snap.domain.entitlements import SubscriptionStatus

_logger = logging.getLogger(__name__)


class CreditDebiter(Protocol):
    """The part of the ledger a client needs to spend credits."""

    def debit_credit(self, user_id: str) -> bool:
        """Atomically take one credit; return False if none was left."""


class BillingLedger(CreditDebiter, Protocol):
    """Idempotent credit mutations driven by payment events."""

    def add_credits(  # noqa: PLR0913
        self,
        user_id: str,
        amount: int,
        source_id: str,
        *,
        price: float = 0.0,
        pack_name: str | None = None,
    ) -> None:
        """Grant one-time credits once per `source_id`."""

    def refill_subscription_credits(  # noqa: PLR0913
        self,
        user_id: str,
        amount: int,
        invoice_id: str,
        *,
        subscription_id: str | None = None,
        period_end: str | None = None,
    ) -> None:
        """Reset subscription credits once per `invoice_id`."""

    def update_subscription(
        self,
        user_id: str,
        status: SubscriptionStatus,
        subscription_id: str | None,
        period_end: str | None,
    ) -> None:
        """Record a subscription status change."""

    def clear_subscription(self, user_id: str) -> None:
        """Drop the subscription and its remaining credits."""


class SubscriptionLookup(Protocol):
    """Reads subscription details from the payment provider."""

    async def retrieve_subscription(self, subscription_id: str) -> dict[str, object]:
        """Return the subscription object as a plain dict."""


@dataclass
class BillingService:
    """Translates payment-provider events into ledger calls."""

    ledger: BillingLedger
    subscriptions: SubscriptionLookup | None = None
    default_subscription_credits: int = 80

    async def handle_event(self, event: Mapping[str, object]) -> str:
        """Apply an event and return a short outcome label.

        Raises ValueError when a recognised event lacks required metadata.
        """
        event_type = str(event.get("type", ""))
        data = event.get("data")
        obj = data.get("object") if isinstance(data, Mapping) else None
        if not isinstance(obj, Mapping):
            return "ignored"

        if event_type == "checkout.session.completed":
            return await self._checkout_completed(obj)
        if event_type == "invoice.paid":
            return await self._invoice_paid(obj)
        if event_type == "customer.subscription.updated":
            return await self._subscription_updated(obj)
        if event_type == "customer.subscription.deleted":
            return await self._subscription_deleted(obj)
        _logger.info("Unhandled billing event type: %s", event_type)
        return "ignored"

    async def _checkout_completed(self, session: Mapping[str, object]) -> str:
        if session.get("mode") == "subscription":
            return "ignored"
        metadata = _metadata(session)
        user_id = metadata.get("userId")
        credits = metadata.get("credits")
        if not user_id or not credits:
            raise ValueError("Missing metadata")
        await asyncio.to_thread(
            self.ledger.add_credits,
            user_id,
            int(credits),
            str(session.get("id", "")),
            price=float(metadata.get("amount") or 0),
            pack_name=metadata.get("packName"),
        )
        _logger.info("Added %s credits for %s", credits, user_id)
        return "credits_added"

    async def _invoice_paid(self, invoice: Mapping[str, object]) -> str:
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id or self.subscriptions is None:
            return "ignored"
        subscription = await self.subscriptions.retrieve_subscription(subscription_id)
        metadata = _metadata(subscription)
        user_id = metadata.get("userId")
        if not user_id:
            return "ignored"
        credits = int(metadata.get("credits") or self.default_subscription_credits)
        period_end = _period_end(subscription) or datetime.now(tz=UTC).isoformat()
        await asyncio.to_thread(
            self.ledger.refill_subscription_credits,
            user_id,
            credits,
            str(invoice.get("id", "")),
            subscription_id=subscription_id,
            period_end=period_end,
        )
        _logger.info("Refilled %s subscription credits for %s", credits, user_id)
        return "subscription_refilled"

    async def _subscription_updated(self, subscription: Mapping[str, object]) -> str:
        user_id = _metadata(subscription).get("userId")
        if not user_id:
            return "ignored"
        status = SubscriptionStatus.ACTIVE
        if subscription.get("cancel_at_period_end"):
            status = SubscriptionStatus.CANCELED
        if subscription.get("status") == "past_due":
            status = SubscriptionStatus.PAST_DUE
        await asyncio.to_thread(
            self.ledger.update_subscription,
            user_id,
            status,
            str(subscription.get("id", "")) or None,
            _period_end(subscription),
        )
        return "subscription_updated"

    async def _subscription_deleted(self, subscription: Mapping[str, object]) -> str:
        user_id = _metadata(subscription).get("userId")
        if not user_id:
            return "ignored"
        await asyncio.to_thread(self.ledger.clear_subscription, user_id)
        return "subscription_cleared"


def _metadata(obj: Mapping[str, object]) -> dict[str, str]:
    raw = obj.get("metadata")
    if not isinstance(raw, Mapping):
        return {}
    return {str(key): str(value) for key, value in raw.items() if value is not None}


def _invoice_subscription_id(invoice: Mapping[str, object]) -> str | None:
    """Find the subscription id on old and new invoice shapes."""
    direct = invoice.get("subscription")
    if isinstance(direct, str) and direct:
        return direct
    parent = invoice.get("parent")
    if isinstance(parent, Mapping):
        details = parent.get("subscription_details")
        if isinstance(details, Mapping):
            nested = details.get("subscription")
            if isinstance(nested, str) and nested:
                return nested
    return None


def _period_end(subscription: Mapping[str, object]) -> str | None:
    """Return the current period end as ISO text, if the object carries one."""
    raw = subscription.get("current_period_end")
    if not raw:
        items = subscription.get("items")
        data = items.get("data") if isinstance(items, Mapping) else None
        if isinstance(data, list) and data and isinstance(data[0], Mapping):
            raw = data[0].get("current_period_end")
    if isinstance(raw, int | float) and not isinstance(raw, bool):
        return datetime.fromtimestamp(raw, tz=UTC).isoformat()
    return None
