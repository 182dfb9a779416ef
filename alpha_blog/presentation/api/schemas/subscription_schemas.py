"""Pydantic schemas for subscription API endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CreateCheckoutSessionRequest(BaseModel):
    """Request schema for creating a checkout session."""

    model_config = ConfigDict(populate_by_name=True)

    price_id: str = Field(alias="priceId", min_length=1)
    plan: Literal["monthly", "yearly"]


class CreateCheckoutSessionResponse(BaseModel):
    """Response schema for creating a checkout session."""

    url: str


class SubscriptionResponse(BaseModel):
    """Response schema for subscription data."""

    id: int
    stripe_subscription_id: str
    price_id: str
    plan_type: str
    status: str
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool
    is_active: bool
    is_premium: bool
    days_until_expiry: int
    is_expiring_soon: bool


class PlanResponse(BaseModel):
    """Response schema for available plans."""

    plan: str
    name: str
    price_id: str
    amount: int
    currency: str
    interval: str
