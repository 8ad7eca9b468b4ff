"""Tests for the HTTP API."""

import base64
import hashlib
import hmac
import json
import time

from fastapi.testclient import TestClient

from recipe_snap.api.app import create_app
from recipe_snap.containers import AppContainer
from recipe_snap.domain.errors import TransportError
from tests.conftest import (
    FakeCheckoutGateway,
    FakeRecipeModelClient,
    InMemoryRemoteStore,
)


def _sign(payload: bytes, secret: str = "whsec_test") -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def test_health(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_image_returns_recipes(
    container: AppContainer, model_client: FakeRecipeModelClient
) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/analyze-image",
        json={
            "imageData": base64.b64encode(b"\xff\xd8\xffphoto").decode(),
            "mimeType": "image/jpeg",
            "dietaryFilters": "vegan",
            "maxTime": 15,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["ingredients"] == ["egg", "tomato"]
    assert body["recipes"][0]["imageSearch"] == "shakshuka"
    assert "vegan" in model_client.prompts[-1]
    assert "15 minutes" in model_client.prompts[-1]


def test_analyze_image_requires_image(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    missing = client.post("/api/analyze-image", json={"mimeType": "image/jpeg"})
    empty = client.post("/api/analyze-image", json={})
    invalid = client.post(
        "/api/analyze-image", json={"imageData": "%%%", "mimeType": "image/jpeg"}
    )

    assert missing.status_code == 400
    assert empty.json() == {"detail": "Missing image data"}
    assert invalid.status_code == 400


def test_analyze_image_detects_type_without_mime_type(
    container: AppContainer, model_client: FakeRecipeModelClient
) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/analyze-image",
        json={"imageData": base64.b64encode(b"\x89PNG\r\n\x1a\nxx").decode()},
    )

    assert response.status_code == 200
    assert response.json()["ingredients"] == ["egg", "tomato"]
    assert model_client.image_data_urls[-1].startswith("data:image/png;base64,")


def test_analyze_image_without_ingredients_is_422(
    container: AppContainer, model_client: FakeRecipeModelClient
) -> None:
    model_client.analysis_payload = {"ingredients": [], "recipes": []}
    client = TestClient(create_app(container))

    response = client.post(
        "/api/analyze-image",
        json={"imageData": base64.b64encode(b"x").decode(), "mimeType": "image/png"},
    )

    assert response.status_code == 422
    assert "No food ingredients" in response.json()["detail"]


def test_regenerate_recipes(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/regenerate-recipes", json={"ingredients": ["egg", "cheese"]}
    )
    empty = client.post("/api/regenerate-recipes", json={"ingredients": []})

    assert response.status_code == 200
    assert response.json()["recipes"][0]["name"] == "Omelette"
    assert empty.status_code == 400


def test_generate_image(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/generate-image",
        json={"recipeName": "Paella", "ingredients": ["rice"], "description": "Rice"},
    )
    missing = client.post("/api/generate-image", json={"ingredients": ["rice"]})

    assert response.status_code == 200
    assert response.json() == {"mimeType": "image/png", "data": "cG5n"}
    assert missing.status_code == 400


def test_upstream_failure_is_502(container: AppContainer) -> None:
    class _DownClient(FakeRecipeModelClient):
        async def generate(self, **kwargs):  # type: ignore[no-untyped-def]
            raise TransportError("OpenAI request failed")

    container.generation_service.client = _DownClient()
    client = TestClient(create_app(container))

    response = client.post("/api/regenerate-recipes", json={"ingredients": ["egg"]})

    assert response.status_code == 502


def test_missing_generator_is_500(container: AppContainer) -> None:
    container.generation_service = None
    client = TestClient(create_app(container))

    response = client.post("/api/regenerate-recipes", json={"ingredients": ["egg"]})

    assert response.status_code == 500


def test_webhook_adds_credits_once(
    container: AppContainer, remote_store: InMemoryRemoteStore
) -> None:
    client = TestClient(create_app(container))
    payload = json.dumps(
        {
            "id": "evt_1",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "sess_123",
                    "object": "checkout.session",
                    "mode": "payment",
                    "metadata": {"userId": "user-1", "credits": "25"},
                }
            },
        }
    ).encode()

    for _ in range(2):
        response = client.post(
            "/api/stripe-webhook",
            content=payload,
            headers={"stripe-signature": _sign(payload)},
        )
        assert response.status_code == 200
        assert response.json() == {"received": True}

    assert remote_store.profiles["user-1"]["credits"] == 25


def test_webhook_refills_subscription_on_invoice(
    container: AppContainer, remote_store: InMemoryRemoteStore
) -> None:
    client = TestClient(create_app(container))
    payload = json.dumps(
        {
            "id": "evt_2",
            "object": "event",
            "type": "invoice.paid",
            "data": {"object": {"id": "in_1", "subscription": "sub_1"}},
        }
    ).encode()

    response = client.post(
        "/api/stripe-webhook", content=payload, headers={"stripe-signature": _sign(payload)}
    )

    assert response.status_code == 200
    assert remote_store.profiles["user-1"]["subscription_credits"] == 80


def test_webhook_rejects_bad_signature(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    payload = json.dumps({"id": "evt_3", "object": "event", "type": "x"}).encode()

    unsigned = client.post("/api/stripe-webhook", content=payload)
    forged = client.post(
        "/api/stripe-webhook",
        content=payload,
        headers={"stripe-signature": _sign(payload, secret="whsec_other")},
    )

    assert unsigned.status_code == 400
    assert forged.status_code == 400
    assert forged.json()["detail"].startswith("Webhook error")


def test_webhook_missing_metadata_is_400(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    payload = json.dumps(
        {
            "id": "evt_4",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "sess_9", "mode": "payment", "metadata": {}}},
        }
    ).encode()

    response = client.post(
        "/api/stripe-webhook", content=payload, headers={"stripe-signature": _sign(payload)}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing metadata"


def test_webhook_without_billing_is_500(container: AppContainer) -> None:
    container.billing_service = None
    client = TestClient(create_app(container))
    payload = b"{}"

    response = client.post(
        "/api/stripe-webhook", content=payload, headers={"stripe-signature": _sign(payload)}
    )

    assert response.status_code == 500


def test_checkout_requires_bearer_token(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    missing = client.post("/api/create-checkout", json={"packName": "starter"})
    forged = client.post(
        "/api/create-checkout",
        json={"packName": "starter"},
        headers={"Authorization": "Bearer forged"},
    )

    assert missing.status_code == 401
    assert missing.json() == {"detail": "Unauthorized"}
    assert forged.status_code == 401
    assert forged.json() == {"detail": "Invalid token"}


def test_checkout_for_credit_pack(
    container: AppContainer, checkout_gateway: FakeCheckoutGateway
) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/create-checkout",
        json={"packName": "regular"},
        headers={"Authorization": "Bearer token-user-1", "Origin": "https://app.test"},
    )
    invalid = client.post(
        "/api/create-checkout",
        json={"packName": "mega"},
        headers={"Authorization": "Bearer token-user-1"},
    )

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.test/c/1"}
    session = checkout_gateway.sessions[0]
    assert session["metadata"]["packName"] == "regular"
    assert session["cancel_url"] == "https://app.test"
    assert invalid.status_code == 400
    assert invalid.json() == {"detail": "Invalid pack"}


def test_checkout_for_subscription(
    container: AppContainer,
    checkout_gateway: FakeCheckoutGateway,
    remote_store: InMemoryRemoteStore,
) -> None:
    client = TestClient(create_app(container))
    headers = {"Authorization": "Bearer token-user-1"}

    first = client.post(
        "/api/create-checkout", json={"type": "subscription"}, headers=headers
    )
    remote_store.profiles["user-1"]["subscription_status"] = "active"
    second = client.post(
        "/api/create-checkout", json={"type": "subscription"}, headers=headers
    )

    assert first.status_code == 200
    assert checkout_gateway.sessions[0]["mode"] == "subscription"
    assert checkout_gateway.sessions[0]["cancel_url"] == "http://testserver"
    assert checkout_gateway.customers[0]["email"] == "user-1@example.com"
    assert second.status_code == 400
    assert second.json() == {"detail": "Already subscribed"}


def test_portal_session(
    container: AppContainer, remote_store: InMemoryRemoteStore
) -> None:
    client = TestClient(create_app(container))
    headers = {"Authorization": "Bearer token-user-1", "Origin": "https://app.test"}

    no_account = client.post("/api/create-portal-session", headers=headers)
    remote_store.profiles["user-1"] = {"id": "user-1", "stripe_customer_id": "cus_7"}
    response = client.post("/api/create-portal-session", headers=headers)

    assert no_account.status_code == 400
    assert no_account.json() == {"detail": "No billing account found"}
    assert response.status_code == 200
    assert response.json() == {"url": "https://billing.stripe.test/p/cus_7"}


def test_checkout_without_stripe_is_500(container: AppContainer) -> None:
    container.checkout_service = None
    client = TestClient(create_app(container))

    response = client.post(
        "/api/create-portal-session", headers={"Authorization": "Bearer token-user-1"}
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Billing not configured"}
