"""Stripe payment integration."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import stripe

from ...domain.errors import BillingProviderError

logger = logging.getLogger(__name__)


def _as_dict(obj: Any) -> Dict[str, Any]:
    """Plain nested dict for a StripeObject, so handlers never depend on SDK types."""
    for method in ("to_dict", "to_dict_recursive"):
        converter = getattr(obj, method, None)
        if converter is not None:
            return converter()
    return dict(obj)


class StripeBillingGateway:
    """Manages Stripe API calls for checkout and subscription lookups."""

    def __init__(self, secret_key: Optional[str]) -> None:
        self._configured = bool(secret_key)
        if secret_key:
            stripe.api_key = secret_key
        else:
            logger.warning("STRIPE_SECRET_KEY is not set; checkout and subscription lookups will fail.")

    def _require_configured(self) -> None:
        if not self._configured:
            raise BillingProviderError("Stripe not configured. Please set STRIPE_SECRET_KEY.")

    def create_checkout_session(
        self,
        *,
        price_id: str,
        customer_email: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> str:
        """Create a hosted subscription checkout session and return its URL."""
        self._require_configured()
        try:
            session = stripe.checkout.Session.create(
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                customer_email=customer_email,
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
                subscription_data={"metadata": metadata},
            )
        except stripe.InvalidRequestError as exc:
            raise BillingProviderError(f"Invalid request: {exc.user_message or exc}") from exc
        except stripe.AuthenticationError as exc:
            raise BillingProviderError("Invalid Stripe API key") from exc
        except stripe.StripeError as exc:
            logger.error("Failed to create checkout session: %s", str(exc))
            raise BillingProviderError(f"Failed to create checkout session: {exc}") from exc

        if not session.url:
            raise BillingProviderError("Stripe returned a checkout session without a URL")
        return session.url

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        self._require_configured()
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
        except stripe.StripeError as exc:
            logger.error("Failed to retrieve subscription %s: %s", subscription_id, str(exc))
            raise BillingProviderError(f"Failed to retrieve subscription: {exc}") from exc
        return _as_dict(subscription)

    def cancel_at_period_end(self, subscription_id: str) -> Dict[str, Any]:
        self._require_configured()
        try:
            subscription = stripe.Subscription.modify(subscription_id, cancel_at_period_end=True)
        except stripe.StripeError as exc:
            logger.error("Failed to cancel subscription %s: %s", subscription_id, str(exc))
            raise BillingProviderError(f"Failed to cancel subscription: {exc}") from exc
        return _as_dict(subscription)
