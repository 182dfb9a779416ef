"""Authentication and parsing of inbound Stripe webhook deliveries."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

import stripe

from ..domain.errors import MalformedEvent, MissingSignature, SignatureInvalid
from ..domain.models import WebhookEvent

logger = logging.getLogger(__name__)


class WebhookVerifier:
    """Verifies the Stripe-Signature header over the exact raw body, then parses it."""

    def __init__(self, secret: Optional[str], tolerance_seconds: int = 300) -> None:
        self._secret = secret
        self._tolerance = tolerance_seconds

    def verify(self, payload: Union[bytes, str], signature: Optional[str]) -> WebhookEvent:
        """
        Authenticate a delivery and return the typed event.

        Args:
            payload: Raw request body exactly as received
            signature: Value of the Stripe-Signature header

        Returns:
            Parsed WebhookEvent

        Raises:
            MissingSignature: If no signature header was sent
            SignatureInvalid: If the signature does not verify (or cannot be checked)
            MalformedEvent: If the authentic body is not an event envelope
        """
        if not signature:
            raise MissingSignature("Missing stripe-signature header")
        if not self._secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not configured; rejecting webhook delivery")
            raise SignatureInvalid("Webhook secret not configured")

        try:
            text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
            stripe.WebhookSignature.verify_header(text, signature, self._secret, self._tolerance)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise SignatureInvalid("Webhook signature verification failed") from exc
        except Exception as exc:
            logger.warning("Webhook verification error: %s", exc)
            raise SignatureInvalid("Webhook signature verification failed") from exc

        return self._parse(text)

    @staticmethod
    def _parse(text: str) -> WebhookEvent:
        try:
            envelope: Any = json.loads(text)
        except ValueError as exc:
            raise MalformedEvent("Webhook body is not valid JSON") from exc

        if not isinstance(envelope, dict):
            raise MalformedEvent("Webhook body is not an event object")

        event_id = envelope.get("id")
        event_type = envelope.get("type")
        data = envelope.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(event_id, str) or not isinstance(event_type, str) or not isinstance(obj, dict):
            raise MalformedEvent("Webhook event is missing id, type or data.object")

        created = envelope.get("created")
        return WebhookEvent(
            id=event_id,
            type=event_type,
            data=obj,
            created=datetime.fromtimestamp(created, tz=timezone.utc) if isinstance(created, int) else None,
        )
