"""Tests for Stripe SDK adapters."""

import asyncio

import pytest
import stripe

from recipe_snap.adapters.stripe_checkout import StripeCheckoutGateway
from recipe_snap.adapters.stripe_subscriptions import StripeSubscriptionLookup
from recipe_snap.domain.errors import TransportError


def test_subscription_lookup_returns_plain_dict(monkeypatch) -> None:
    calls: list[tuple[str, str]] = []

    def fake_retrieve(subscription_id: str, api_key: str) -> stripe.Subscription:
        calls.append((subscription_id, api_key))
        return stripe.Subscription.construct_from(
            {
                "id": subscription_id,
                "object": "subscription",
                "metadata": {"userId": "user-1", "credits": "80"},
                "items": {
                    "object": "list",
                    "data": [{"object": "subscription_item", "current_period_end": 1}],
                },
            },
            api_key,
        )

    monkeypatch.setattr(stripe.Subscription, "retrieve", fake_retrieve)

    result = asyncio.run(StripeSubscriptionLookup("sk_test").retrieve_subscription("sub_1"))

    assert calls == [("sub_1", "sk_test")]
    assert type(result) is dict
    assert type(result["metadata"]) is dict
    assert result["metadata"] == {"userId": "user-1", "credits": "80"}
    assert type(result["items"]["data"][0]) is dict


def test_gateway_passes_api_key_and_returns_urls(monkeypatch) -> None:
    calls: dict[str, dict[str, object]] = {}

    def recorder(name: str, result: dict[str, object]):  # type: ignore[no-untyped-def]
        def create(**params: object) -> stripe.StripeObject:
            calls[name] = params
            return stripe.StripeObject.construct_from(result, "sk_test")

        return create

    monkeypatch.setattr(stripe.Customer, "create", recorder("customer", {"id": "cus_1"}))
    monkeypatch.setattr(
        stripe.checkout.Session,
        "create",
        recorder("checkout", {"url": "https://checkout.stripe.test/c/1"}),
    )
    monkeypatch.setattr(
        stripe.billing_portal.Session,
        "create",
        recorder("portal", {"url": "https://billing.stripe.test/p/cus_1"}),
    )
    gateway = StripeCheckoutGateway("sk_test")

    async def scenario() -> tuple[str, str, str]:
        customer = await gateway.create_customer(email="a@b.test", user_id="user-1")
        checkout = await gateway.create_checkout_session({"mode": "payment"})
        portal = await gateway.create_portal_session(
            customer_id=customer, return_url="https://app.test"
        )
        return customer, checkout, portal

    customer, checkout, portal = asyncio.run(scenario())

    assert customer == "cus_1"
    assert checkout == "https://checkout.stripe.test/c/1"
    assert portal == "https://billing.stripe.test/p/cus_1"
    assert calls["customer"] == {
        "api_key": "sk_test",
        "email": "a@b.test",
        "metadata": {"userId": "user-1"},
    }
    assert calls["checkout"] == {"api_key": "sk_test", "mode": "payment"}
    assert calls["portal"]["customer"] == "cus_1"


def test_gateway_wraps_provider_errors(monkeypatch) -> None:
    def fail(**params: object) -> None:
        raise stripe.InvalidRequestError("No such price", "price")

    monkeypatch.setattr(stripe.checkout.Session, "create", fail)

    with pytest.raises(TransportError, match="No such price"):
        asyncio.run(StripeCheckoutGateway("sk_test").create_checkout_session({}))
