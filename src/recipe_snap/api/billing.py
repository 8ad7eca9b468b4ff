"""Payment endpoints: hosted checkout, billing portal and the provider webhook."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from recipe_snap.api.models import CheckoutRequest, SessionUrlResponse
from recipe_snap.domain.checkout import AuthenticatedUser, CheckoutKind
from recipe_snap.domain.errors import CapabilityUnavailable, CheckoutRejected

if TYPE_CHECKING:
    from recipe_snap.containers import AppContainer
    from recipe_snap.services.checkout import CheckoutService

router = APIRouter(prefix="/api", tags=["billing"])
_logger = logging.getLogger(__name__)


@router.post("/stripe-webhook")
async def stripe_webhook(request: Request) -> dict[str, object]:
    """Verify a Stripe event and apply it to the credit ledger."""
    container: AppContainer = request.app.state.container
    secret = container.settings.stripe_webhook_secret
    if container.billing_service is None or not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Billing not configured",
        )

    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing signature"
        )
    try:
        stripe.Webhook.construct_event(payload, signature, secret)
        event = json.loads(payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload"
        ) from exc
    except stripe.SignatureVerificationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook error: {exc}",
        ) from exc

    try:
        outcome = await container.billing_service.handle_event(event)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    _logger.info("Stripe event %s: %s", event.get("type"), outcome)
    return {"received": True}


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> AuthenticatedUser:
    """Resolve the Supabase bearer token on the request to a user."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )
    container: AppContainer = request.app.state.container
    if container.user_verifier is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Auth not configured",
        )
    user = await container.user_verifier.verify(authorization.split(" ", 1)[1])
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    return user


@router.post("/create-checkout")
async def create_checkout(
    body: CheckoutRequest,
    request: Request,
    user: AuthenticatedUser = Depends(require_user),
) -> dict[str, object]:
    """Start a Stripe checkout for a credit pack or the monthly subscription."""
    checkout = _require_checkout(request)
    origin = _origin(request)
    try:
        if body.kind is CheckoutKind.SUBSCRIPTION:
            url = await checkout.create_subscription_checkout(user, origin)
        else:
            url = await checkout.create_pack_checkout(user, body.pack_name, origin)
    except (CheckoutRejected, CapabilityUnavailable) as exc:
        raise _billing_http_error(exc) from exc
    return SessionUrlResponse(url=url).model_dump()


@router.post("/create-portal-session")
async def create_portal_session(
    request: Request, user: AuthenticatedUser = Depends(require_user)
) -> dict[str, object]:
    """Open the Stripe billing portal for the user's customer record."""
    checkout = _require_checkout(request)
    try:
        url = await checkout.create_portal_session(user, _origin(request))
    except CheckoutRejected as exc:
        raise _billing_http_error(exc) from exc
    return SessionUrlResponse(url=url).model_dump()


def _require_checkout(request: Request) -> CheckoutService:
    container: AppContainer = request.app.state.container
    if container.checkout_service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Billing not configured",
        )
    return container.checkout_service


def _origin(request: Request) -> str:
    return request.headers.get("origin") or str(request.base_url).rstrip("/")


def _billing_http_error(exc: Exception) -> HTTPException:
    code = (
        status.HTTP_400_BAD_REQUEST
        if isinstance(exc, CheckoutRejected)
        else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return HTTPException(status_code=code, detail=str(exc))
