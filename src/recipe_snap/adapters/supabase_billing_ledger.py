"""Supabase RPC implementation of the credit ledger."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from recipe_snap.domain.entitlements import SubscriptionStatus
from recipe_snap.services.billing import BillingLedger


@dataclass
class SupabaseBillingLedger(BillingLedger):
    """Ledger whose idempotency and atomicity live in database functions.

    `add_credits` and `refill_subscription_credits` record the Stripe session
    or invoice id in `transactions` and skip ids already seen; `use_credit`
    is a single conditional decrement.
    """

    client: Client

    def add_credits(  # noqa: PLR0913
        self,
        user_id: str,
        amount: int,
        source_id: str,
        *,
        price: float = 0.0,
        pack_name: str | None = None,
    ) -> None:
        """Grant one-time credits once per Stripe checkout session."""
        self.client.rpc(
            "add_credits",
            {
                "p_user_id": user_id,
                "p_credits": amount,
                "p_amount": price,
                "p_stripe_session_id": source_id,
                "p_pack_name": pack_name,
            },
        ).execute()

    def refill_subscription_credits(  # noqa: PLR0913
        self,
        user_id: str,
        amount: int,
        invoice_id: str,
        *,
        subscription_id: str | None = None,
        period_end: str | None = None,
    ) -> None:
        """Reset subscription credits once per paid invoice."""
        self.client.rpc(
            "refill_subscription_credits",
            {
                "p_user_id": user_id,
                "p_credits": amount,
                "p_stripe_invoice_id": invoice_id,
                "p_subscription_id": subscription_id,
                "p_period_end": period_end,
            },
        ).execute()

    def debit_credit(self, user_id: str) -> bool:
        """Take one credit, subscription credits first."""
        response = self.client.rpc("use_credit", {"user_id": user_id}).execute()
        return bool(response.data)

    def update_subscription(
        self,
        user_id: str,
        status: SubscriptionStatus,
        subscription_id: str | None,
        period_end: str | None,
    ) -> None:
        """Record a subscription status change on the profile."""
        payload: dict[str, object] = {
            "subscription_status": status.value,
            "subscription_id": subscription_id,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        if period_end:
            payload["subscription_period_end"] = period_end
        self.client.table("profiles").update(payload).eq("id", user_id).execute()

    def clear_subscription(self, user_id: str) -> None:
        """Drop the subscription and its remaining credits."""
        self.client.table("profiles").update(
            {
                "subscription_status": SubscriptionStatus.NONE.value,
                "subscription_credits": 0,
                "subscription_id": None,
                "subscription_period_end": None,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).eq("id", user_id).execute()
