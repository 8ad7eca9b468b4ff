"""Models for credits, subscriptions and consumption outcomes."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from recipe_snap.domain.errors import RecipeSnapError


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle states as stored on the profile."""

    NONE = "none"
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"

    @classmethod
    def parse(cls, raw: object) -> "SubscriptionStatus":
        try:
            return cls(str(raw))
        except ValueError:
            return cls.NONE

    @property
    def allows_consumption(self) -> bool:
        # canceled subscriptions stay spendable until the period ends
        return self in {SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELED}


class CreditSource(str, Enum):
    """Which allowance paid for an action."""

    UNLIMITED = "unlimited"
    FREE = "free"
    SUBSCRIPTION = "subscription"
    ONE_TIME = "one_time"


@dataclass(frozen=True)
class Profile:
    """Remote profile row for a signed-in user."""

    id: str
    credits: int = 0
    subscription_credits: int = 0
    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    subscription_period_end: str | None = None
    stripe_customer_id: str | None = None
    settings: dict[str, object] = field(default_factory=dict)

    @property
    def has_active_subscription(self) -> bool:
        return self.subscription_status.allows_consumption

    @classmethod
    def from_row(cls, row: Mapping[str, object]) -> "Profile":
        """Parse a `profiles` row."""
        settings = row.get("settings")
        return cls(
            id=str(row.get("id", "")),
            credits=max(0, int(row.get("credits") or 0)),
            subscription_credits=max(0, int(row.get("subscription_credits") or 0)),
            subscription_status=SubscriptionStatus.parse(
                row.get("subscription_status") or "none"
            ),
            subscription_period_end=row.get("subscription_period_end"),
            stripe_customer_id=row.get("stripe_customer_id") or None,
            settings=dict(settings) if isinstance(settings, Mapping) else {},
        )


@dataclass(frozen=True)
class ConsumptionResult:
    """Outcome of trying to spend one action's worth of entitlement."""

    success: bool
    source: CreditSource | None = None
    error: RecipeSnapError | None = None

    def raise_for_error(self) -> None:
        """Raise the typed error when consumption failed."""
        if self.error is not None:
            raise self.error


@dataclass(frozen=True)
class Purchase:
    """A completed credit-pack purchase."""

    id: str
    credits: int
    amount: float
    pack_name: str | None
    created_at: str | None

    @classmethod
    def from_row(cls, row: Mapping[str, object]) -> "Purchase":
        """Parse a `transactions` row."""
        return cls(
            id=str(row.get("id", "")),
            credits=int(row.get("credits") or 0),
            amount=float(row.get("amount") or 0.0),
            pack_name=row.get("pack_name"),
            created_at=row.get("created_at"),
        )
