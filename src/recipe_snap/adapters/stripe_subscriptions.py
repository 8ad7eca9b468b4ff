"""Stripe lookup for subscription metadata."""

import asyncio
from dataclasses import dataclass

import stripe

from recipe_snap.services.billing import SubscriptionLookup


@dataclass
class StripeSubscriptionLookup(SubscriptionLookup):
    """Retrieves subscriptions with the Stripe SDK."""

    api_key: str

    async def retrieve_subscription(self, subscription_id: str) -> dict[str, object]:
        """Return the subscription as a plain dict, nested objects included."""
        subscription = await asyncio.to_thread(
            stripe.Subscription.retrieve, subscription_id, api_key=self.api_key
        )
        return subscription.to_dict()
