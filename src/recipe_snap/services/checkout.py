"""Creating payment-provider checkout and billing-portal sessions."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from recipe_snap.domain.checkout import CREDIT_PACKS, AuthenticatedUser, CreditPack
from recipe_snap.domain.entitlements import Profile, SubscriptionStatus
from recipe_snap.domain.errors import CapabilityUnavailable, CheckoutRejected
from recipe_snap.services.remote_store import RemoteStore

_logger = logging.getLogger(__name__)


class UserVerifier(Protocol):
    """Resolves a bearer token to the user it was issued for."""

    async def verify(self, token: str) -> AuthenticatedUser | None:
        """Return the user, or None when the token is not accepted."""


class CheckoutGateway(Protocol):
    """Hosted-checkout operations of the payment provider."""

    async def create_customer(self, *, email: str | None, user_id: str) -> str:
        """Create a customer record and return its id."""

    async def create_checkout_session(self, params: Mapping[str, object]) -> str:
        """Create a checkout session and return its URL."""

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        """Create a billing-portal session and return its URL."""


@dataclass
class CheckoutService:
    """Builds checkout sessions whose metadata the billing webhook understands."""

    gateway: CheckoutGateway
    profiles: RemoteStore
    pack_prices: Mapping[str, str | None] = field(default_factory=dict)
    subscription_price_id: str | None = None
    subscription_credits: int = 80

    async def create_pack_checkout(
        self, user: AuthenticatedUser, pack_name: str, origin: str
    ) -> str:
        """Start a one-time payment for a credit pack."""
        pack = CREDIT_PACKS.get(pack_name)
        if pack is None:
            raise CheckoutRejected("Invalid pack")
        price_id = self.pack_prices.get(pack.name)
        if not price_id:
            raise CapabilityUnavailable(f"Pack {pack.name} not configured")
        url = await self.gateway.create_checkout_session(
            {
                "mode": "payment",
                "payment_method_types": ["card"],
                "line_items": [{"price": price_id, "quantity": 1}],
                "metadata": _pack_metadata(user, pack),
                "success_url": _success_url(origin),
                "cancel_url": origin,
            }
        )
        _logger.info("Checkout for %s pack started by %s", pack.name, user.id)
        return url

    async def create_subscription_checkout(
        self, user: AuthenticatedUser, origin: str
    ) -> str:
        """Start a monthly subscription, creating the customer on first use."""
        if not self.subscription_price_id:
            raise CapabilityUnavailable("Subscription not configured")
        profile = await self._profile(user)
        if profile is not None and (
            profile.subscription_status is SubscriptionStatus.ACTIVE
        ):
            raise CheckoutRejected("Already subscribed")

        customer_id = profile.stripe_customer_id if profile else None
        if not customer_id:
            customer_id = await self.gateway.create_customer(
                email=user.email, user_id=user.id
            )
            await asyncio.to_thread(
                self.profiles.update_profile,
                user.id,
                {"stripe_customer_id": customer_id},
            )

        credits = str(self.subscription_credits)
        url = await self.gateway.create_checkout_session(
            {
                "mode": "subscription",
                "customer": customer_id,
                "payment_method_types": ["card"],
                "line_items": [{"price": self.subscription_price_id, "quantity": 1}],
                "metadata": {
                    "userId": user.id,
                    "type": "subscription",
                    "credits": credits,
                },
                "subscription_data": {
                    "metadata": {"userId": user.id, "credits": credits}
                },
                "success_url": _success_url(origin),
                "cancel_url": origin,
            }
        )
        _logger.info("Subscription checkout started by %s", user.id)
        return url

    async def create_portal_session(self, user: AuthenticatedUser, origin: str) -> str:
        """Open the provider's billing portal for an existing customer."""
        profile = await self._profile(user)
        if profile is None or not profile.stripe_customer_id:
            raise CheckoutRejected("No billing account found")
        return await self.gateway.create_portal_session(
            customer_id=profile.stripe_customer_id, return_url=origin
        )

    async def _profile(self, user: AuthenticatedUser) -> Profile | None:
        row = await asyncio.to_thread(self.profiles.get_profile, user.id)
        return Profile.from_row(row) if row is not None else None


def _pack_metadata(user: AuthenticatedUser, pack: CreditPack) -> dict[str, str]:
    return {
        "userId": user.id,
        "packName": pack.name,
        "credits": str(pack.credits),
        "amount": str(pack.amount),
    }


def _success_url(origin: str) -> str:
    return f"{origin}?session_id={{CHECKOUT_SESSION_ID}}"
