from dataclasses import dataclass

from .config import Settings
from ..infrastructure.repositories.subscription_repository import SubscriptionRepository
from ..services.access import ContentAccessService
from ..services.billing_events import BillingEventRouter
from ..services.rate_limiter import LoginRateLimiter
from ..services.subscription_service import SubscriptionService
from ..services.user_service import UserService
from ..services.webhook_verifier import WebhookVerifier


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    subscription_repository: SubscriptionRepository
    webhook_verifier: WebhookVerifier
    billing_event_router: BillingEventRouter
    subscription_service: SubscriptionService
    content_access_service: ContentAccessService
    user_service: UserService
    login_rate_limiter: LoginRateLimiter
