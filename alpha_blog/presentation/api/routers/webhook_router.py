"""Stripe webhook endpoint."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from ....core.dependencies import get_billing_event_router, get_webhook_verifier
from ....domain.errors import WebhookVerificationError
from ....services.billing_events import BillingEventRouter
from ....services.webhook_verifier import WebhookVerifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/stripe", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
    event_router: BillingEventRouter = Depends(get_billing_event_router),
) -> Dict[str, Any]:
    """Verify a Stripe delivery over its raw body and apply it to the entitlement store."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = verifier.verify(payload, signature)
    except WebhookVerificationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    logger.info("Received Stripe event %s (%s)", event.type, event.id)

    try:
        await run_in_threadpool(event_router.dispatch, event)
    except Exception:
        # Acknowledge anyway; a retry storm would not fix the failure.
        logger.exception("Failed to handle Stripe event %s (%s); needs reconciliation", event.type, event.id)
        return {"received": True, "eventType": event.type, "error": "Webhook handler failed"}

    return {"received": True, "eventType": event.type}
