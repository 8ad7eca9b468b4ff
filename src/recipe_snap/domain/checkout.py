"""Credit packs and the identity attached to checkout requests."""

from dataclasses import dataclass
from enum import Enum


class CheckoutKind(str, Enum):
    """What a checkout session sells."""

    PACK = "pack"
    SUBSCRIPTION = "subscription"


@dataclass(frozen=True)
class CreditPack:
    """A one-time bundle of credits."""

    name: str
    credits: int
    amount: float


CREDIT_PACKS = {
    pack.name: pack
    for pack in (
        CreditPack("starter", 25, 2.99),
        CreditPack("regular", 50, 4.99),
        CreditPack("pro", 100, 8.99),
    )
}


@dataclass(frozen=True)
class AuthenticatedUser:
    """A user whose access token was accepted by the identity provider."""

    id: str
    email: str | None = None
