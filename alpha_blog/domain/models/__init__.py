"""Domain models for the Alpha Blog application."""

from .content import AccessDecision, ContentMetadata, ContentPage
from .events import WebhookEvent
from .subscription import Entitlement, Subscription
from .user import User

__all__ = [
    "AccessDecision",
    "ContentMetadata",
    "ContentPage",
    "Entitlement",
    "Subscription",
    "User",
    "WebhookEvent",
]
