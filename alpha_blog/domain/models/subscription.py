"""Subscription domain model linking users to Stripe subscriptions."""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

ACTIVE_STATUSES = ("active", "trialing")
PLAN_TYPES = ("monthly", "yearly")

EXPIRING_SOON_DAYS = 7


class Subscription:
    """
    Subscription entity representing a user's Stripe subscription.

    Attributes:
        id: Unique identifier
        user_id: Reference to User
        stripe_subscription_id: Stripe subscription ID (unique, upsert key)
        stripe_customer_id: Stripe customer ID
        status: Subscription status (active, canceled, past_due, etc.)
        plan_type: Billing plan, monthly or yearly
        price_id: Stripe price ID
        current_period_start: Start of current billing period
        current_period_end: End of current billing period
        cancel_at_period_end: Whether subscription will cancel at period end
        canceled_at: When the provider terminated the subscription
        last_event_at: Creation time of the last billing event applied
        created_at: Subscription creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        user_id: int,
        stripe_subscription_id: str,
        stripe_customer_id: str,
        status: str,
        plan_type: str,
        price_id: str,
        current_period_start: datetime,
        current_period_end: datetime,
        cancel_at_period_end: bool = False,
        canceled_at: Optional[datetime] = None,
        last_event_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.stripe_subscription_id = stripe_subscription_id
        self.stripe_customer_id = stripe_customer_id
        self.status = status
        self.plan_type = plan_type
        self.price_id = price_id
        self.current_period_start = current_period_start
        self.current_period_end = current_period_end
        self.cancel_at_period_end = cancel_at_period_end
        self.canceled_at = canceled_at
        self.last_event_at = last_event_at
        self.created_at = created_at or datetime.now(tz=timezone.utc)
        self.updated_at = updated_at or datetime.now(tz=timezone.utc)

    def is_active(self) -> bool:
        """Check if subscription status counts towards entitlement."""
        return self.status in ACTIVE_STATUSES

    def grants_access(self, now: datetime) -> bool:
        """Active status and a paid period that has not ended yet."""
        return self.is_active() and self.current_period_end > now

    def days_until_expiry(self, now: datetime) -> int:
        remaining = (self.current_period_end - now).total_seconds() / 86400
        return max(0, math.ceil(remaining))

    def is_expiring_soon(self, now: datetime) -> bool:
        remaining = math.ceil((self.current_period_end - now).total_seconds() / 86400)
        return 0 < remaining <= EXPIRING_SOON_DAYS

    def __repr__(self) -> str:
        return (
            f"<Subscription id={self.id} user_id={self.user_id} "
            f"stripe_subscription_id={self.stripe_subscription_id} status={self.status}>"
        )


@dataclass(slots=True)
class Entitlement:
    """Whether a user currently has paid access, derived from their subscriptions."""

    is_premium: bool
    subscription: Optional[Subscription] = None

    @classmethod
    def none(cls) -> "Entitlement":
        return cls(is_premium=False)
