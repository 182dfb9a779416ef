"""Service for subscription management with Stripe."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from alpha_blog.core.clock import Clock, utc_now
from alpha_blog.domain.errors import AlreadySubscribedError
from alpha_blog.domain.models.subscription import PLAN_TYPES, Entitlement, Subscription
from alpha_blog.domain.models.user import User
from alpha_blog.domain.ports.gateways import BillingGateway
from alpha_blog.domain.ports.persistence import SubscriptionStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Plan:
    plan_type: str
    name: str
    price_id: str
    amount: int
    currency: str
    interval: str


def build_plan_catalogue(monthly_price_id: str, yearly_price_id: str) -> List[Plan]:
    """Premium plans offered at checkout; amounts are in cents."""
    return [
        Plan("monthly", "Premium Monthly", monthly_price_id, 199, "usd", "month"),
        Plan("yearly", "Premium Yearly", yearly_price_id, 1999, "usd", "year"),
    ]


class SubscriptionService:
    """Service for entitlement checks and user subscription management."""

    def __init__(
        self,
        subscription_repository: SubscriptionStore,
        billing: BillingGateway,
        site_url: str,
        plans: Optional[List[Plan]] = None,
        clock: Clock = utc_now,
    ):
        self.subscription_repository = subscription_repository
        self.billing = billing
        self.site_url = site_url.rstrip("/")
        self.plans = plans or []
        self._clock = clock

    def get_entitlement(self, user_id: Optional[int]) -> Entitlement:
        """
        Derive a user's entitlement from the store.

        A user is premium when an active or trialing subscription has a paid
        period that ends in the future. A missing row means "not premium".

        Raises:
            StoreError: If the entitlement store fails
        """
        if user_id is None:
            return Entitlement.none()

        subscription = self.subscription_repository.get_active_entitlement(user_id)
        if subscription is None:
            return Entitlement.none()

        return Entitlement(
            is_premium=subscription.grants_access(self._clock()),
            subscription=subscription,
        )

    def has_active_subscription(self, user_id: int) -> bool:
        return self.get_entitlement(user_id).is_premium

    def list_plans(self) -> List[Plan]:
        return list(self.plans)

    def create_checkout_session(self, user: User, price_id: str, plan: str) -> str:
        """
        Create a Stripe checkout session for a subscription.

        Args:
            user: Authenticated user starting the checkout
            price_id: Stripe price ID
            plan: Plan type, monthly or yearly

        Returns:
            Checkout session URL

        Raises:
            ValueError: If the plan is unknown or does not match the price
            AlreadySubscribedError: If the user is already premium
            BillingProviderError: If Stripe fails to create the session
        """
        if plan not in PLAN_TYPES:
            raise ValueError(f"Unknown plan: {plan}")

        configured = next((item for item in self.plans if item.plan_type == plan), None)
        if configured and configured.price_id and configured.price_id != price_id:
            raise ValueError("Price does not match the selected plan")

        if self.has_active_subscription(user.id):
            raise AlreadySubscribedError("User already has an active subscription")

        url = self.billing.create_checkout_session(
            price_id=price_id,
            customer_email=user.email,
            success_url=f"{self.site_url}/subscribe/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self.site_url}/subscribe",
            # user_id is the join key back from checkout.session.completed.
            metadata={"user_id": str(user.id), "plan": plan},
        )
        logger.info("Checkout session created for user %s (%s)", user.id, plan)
        return url

    def get_user_subscription(self, user_id: int) -> Optional[Subscription]:
        """Most recent subscription for a user, whatever its status."""
        return self.subscription_repository.get_latest_for_user(user_id)

    def cancel_subscription(self, user_id: int) -> bool:
        """
        Cancel a user's subscription at period end.

        Returns:
            True if canceled, False if no active subscription

        Raises:
            BillingProviderError: If Stripe API call fails
        """
        subscription = self.subscription_repository.get_active_entitlement(user_id)
        if not subscription:
            return False

        self.billing.cancel_at_period_end(subscription.stripe_subscription_id)
        self.subscription_repository.upsert_by_external_id(
            subscription.stripe_subscription_id,
            {"cancel_at_period_end": True},
        )
        logger.info(
            "Subscription %s for user %s set to cancel at period end",
            subscription.stripe_subscription_id,
            user_id,
        )
        return True

    def now(self) -> datetime:
        return self._clock()
