"""API router for user subscription management."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ....core.dependencies import get_subscription_service
from ....domain.errors import BillingProviderError
from ....domain.models import User
from ....services.subscription_service import SubscriptionService
from ..dependencies import get_current_user
from ..schemas.subscription_schemas import PlanResponse, SubscriptionResponse

router = APIRouter(prefix="/api/users/subscription", tags=["user-subscription"])


@router.get("/plans", response_model=List[PlanResponse])
def get_plans(
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> List[PlanResponse]:
    """Get available subscription plans."""
    return [
        PlanResponse(
            plan=plan.plan_type,
            name=plan.name,
            price_id=plan.price_id,
            amount=plan.amount,
            currency=plan.currency,
            interval=plan.interval,
        )
        for plan in subscription_service.list_plans()
    ]


@router.get("/current", response_model=Optional[SubscriptionResponse])
def get_current_subscription(
    user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> Optional[SubscriptionResponse]:
    """Get current user subscription."""
    subscription = subscription_service.get_user_subscription(user.id)

    if not subscription:
        return None

    now = subscription_service.now()
    return SubscriptionResponse(
        id=subscription.id,
        stripe_subscription_id=subscription.stripe_subscription_id,
        price_id=subscription.price_id,
        plan_type=subscription.plan_type,
        status=subscription.status,
        current_period_start=subscription.current_period_start,
        current_period_end=subscription.current_period_end,
        cancel_at_period_end=subscription.cancel_at_period_end,
        is_active=subscription.is_active(),
        is_premium=subscription_service.has_active_subscription(user.id),
        days_until_expiry=subscription.days_until_expiry(now),
        is_expiring_soon=subscription.is_active() and subscription.is_expiring_soon(now),
    )


@router.post("/cancel", status_code=status.HTTP_200_OK)
def cancel_subscription(
    user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> dict:
    """Cancel current subscription at period end."""
    try:
        success = subscription_service.cancel_subscription(user.id)
    except BillingProviderError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active subscription found",
        )

    return {"message": "Subscription will be canceled at the end of the billing period"}
