"""Stripe checkout session endpoint."""

from fastapi import APIRouter, Depends, HTTPException, status

from ....core.dependencies import get_subscription_service
from ....domain.errors import AlreadySubscribedError, BillingProviderError
from ....domain.models import User
from ....services.subscription_service import SubscriptionService
from ..dependencies import get_current_user
from ..schemas.subscription_schemas import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
)

router = APIRouter(prefix="/api/stripe", tags=["Stripe Payments"])


@router.post("/checkout", response_model=CreateCheckoutSessionResponse)
def create_checkout_session(
    payload: CreateCheckoutSessionRequest,
    user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> CreateCheckoutSessionResponse:
    """Create a Stripe checkout session for the signed-in user."""
    try:
        url = subscription_service.create_checkout_session(
            user=user,
            price_id=payload.price_id,
            plan=payload.plan,
        )
    except AlreadySubscribedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BillingProviderError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return CreateCheckoutSessionResponse(url=url)
