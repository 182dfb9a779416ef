"""Routes verified Stripe events to idempotent entitlement-store transitions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from ..core.clock import Clock, utc_now
from ..domain.errors import AttributionError, MalformedEvent
from ..domain.models import WebhookEvent
from ..domain.ports.gateways import BillingGateway
from ..domain.ports.persistence import SubscriptionStore

logger = logging.getLogger(__name__)


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _first_item(subscription: Dict[str, Any]) -> Dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _object_id(value: Any) -> Optional[str]:
    """Stripe references are either an id string or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    return value


def determine_plan_type(subscription: Dict[str, Any]) -> str:
    price = _first_item(subscription).get("price")
    interval = (price.get("recurring") or {}).get("interval") if isinstance(price, dict) else None
    return "yearly" if interval == "year" else "monthly"


def subscription_fields(subscription: Dict[str, Any]) -> Dict[str, Any]:
    """Map a Stripe subscription object onto entitlement-store columns."""
    item = _first_item(subscription)
    # Newer API versions carry the billing period on the items only.
    period_start = subscription.get("current_period_start") or item.get("current_period_start")
    period_end = subscription.get("current_period_end") or item.get("current_period_end")
    if period_start is None or period_end is None:
        raise MalformedEvent(f"Subscription {subscription.get('id')} has no billing period")

    return {
        "stripe_customer_id": _object_id(subscription.get("customer")),
        "status": subscription["status"],
        "plan_type": determine_plan_type(subscription),
        "price_id": _object_id(item.get("price")) or "",
        "current_period_start": _timestamp(period_start),
        "current_period_end": _timestamp(period_end),
        "cancel_at_period_end": bool(subscription.get("cancel_at_period_end", False)),
    }


def _parse_user_id(raw: Any, source: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise AttributionError(f"Invalid user_id {raw!r} in {source}") from exc


class BillingEventRouter:
    """
    Dispatches each verified event to exactly one handler.

    Every write is keyed by the Stripe subscription id and carries the event's
    creation time, so redelivered events converge on the same row and an older
    event never overwrites a newer one.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        billing: BillingGateway,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._billing = billing
        self._clock = clock
        self._handlers: Dict[str, Callable[[WebhookEvent], None]] = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.payment_failed": self._handle_payment_failed,
        }

    def dispatch(self, event: WebhookEvent) -> bool:
        """Run the handler for ``event.type``; returns False for ignored types."""
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.info("Unhandled webhook event type %s (%s)", event.type, event.id)
            return False
        handler(event)
        return True

    # Handlers -------------------------------------------------------------
    def _handle_checkout_completed(self, event: WebhookEvent) -> None:
        session = event.data
        if session.get("mode") != "subscription":
            logger.info("Skipping non-subscription checkout session %s", session.get("id"))
            return

        subscription_id = _object_id(session.get("subscription"))
        if not subscription_id:
            raise MalformedEvent(f"No subscription id in checkout session {session.get('id')}")
        if not _object_id(session.get("customer")):
            raise MalformedEvent(f"No customer id in checkout session {session.get('id')}")

        raw_user_id = (session.get("metadata") or {}).get("user_id")
        if not raw_user_id:
            raise AttributionError(
                f"No user_id in metadata of checkout session {session.get('id')}"
            )
        user_id = _parse_user_id(raw_user_id, f"checkout session {session.get('id')}")

        subscription = self._billing.retrieve_subscription(subscription_id)
        fields = subscription_fields(subscription)
        fields["user_id"] = user_id

        stored = self._store.upsert_by_external_id(subscription_id, fields, event.created)
        logger.info(
            "Checkout completed: user %s subscription %s plan %s status %s",
            user_id,
            subscription_id,
            fields["plan_type"],
            stored.status if stored else fields["status"],
        )

    def _handle_subscription_updated(self, event: WebhookEvent) -> None:
        subscription = event.data
        subscription_id = subscription.get("id")
        if not subscription_id:
            raise MalformedEvent(f"No subscription id in event {event.id}")

        raw_user_id = (subscription.get("metadata") or {}).get("user_id")
        if raw_user_id:
            user_id = _parse_user_id(raw_user_id, f"subscription {subscription_id}")
        else:
            existing = self._store.get_by_stripe_subscription_id(subscription_id)
            if existing is None:
                raise AttributionError(f"No user_id found for subscription {subscription_id}")
            user_id = existing.user_id

        fields = subscription_fields(subscription)
        fields["user_id"] = user_id
        self._store.upsert_by_external_id(subscription_id, fields, event.created)
        logger.info(
            "Subscription %s updated: status %s plan %s",
            subscription_id,
            fields["status"],
            fields["plan_type"],
        )

    def _handle_subscription_deleted(self, event: WebhookEvent) -> None:
        subscription = event.data
        subscription_id = subscription.get("id")
        if not subscription_id:
            raise MalformedEvent(f"No subscription id in event {event.id}")

        terminated_at = (
            _timestamp(subscription.get("ended_at"))
            or _timestamp(subscription.get("canceled_at"))
            or self._clock()
        )
        self._store.mark_terminated(subscription_id, terminated_at, event.created)
        logger.info("Subscription %s terminated at %s", subscription_id, terminated_at.isoformat())

    def _handle_payment_failed(self, event: WebhookEvent) -> None:
        invoice = event.data
        subscription_id = _object_id(invoice.get("subscription"))
        if not subscription_id:
            details = ((invoice.get("parent") or {}).get("subscription_details") or {})
            subscription_id = _object_id(details.get("subscription"))
        if not subscription_id:
            logger.info("No subscription associated with failed invoice %s", invoice.get("id"))
            return

        self._store.upsert_by_external_id(subscription_id, {"status": "past_due"}, event.created)
        logger.info(
            "Payment failed: subscription %s marked past_due (invoice %s)",
            subscription_id,
            invoice.get("id"),
        )
