"""Stripe-hosted checkout and billing portal."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass

import stripe

from recipe_snap.domain.errors import TransportError
from recipe_snap.services.checkout import CheckoutGateway

_logger = logging.getLogger(__name__)


@dataclass
class StripeCheckoutGateway(CheckoutGateway):
    """Creates customers and sessions with the Stripe SDK."""

    api_key: str

    async def create_customer(self, *, email: str | None, user_id: str) -> str:
        customer = await self._call(
            stripe.Customer.create, email=email, metadata={"userId": user_id}
        )
        return customer.id

    async def create_checkout_session(self, params: Mapping[str, object]) -> str:
        session = await self._call(stripe.checkout.Session.create, **params)
        return session.url

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        session = await self._call(
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
        return session.url

    async def _call(self, method, **params):  # type: ignore[no-untyped-def]
        try:
            return await asyncio.to_thread(method, api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            _logger.warning("Stripe request failed: %s", exc)
            raise TransportError(f"Payment provider error: {exc}") from exc
