from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..domain.ports.gateways import BillingGateway, ContentGateway
from ..infrastructure.billing.stripe_gateway import StripeBillingGateway
from ..infrastructure.content.sanity_gateway import SanityContentGateway
from ..infrastructure.persistence.sqlite import ensure_database_dir
from ..infrastructure.repositories.identity_repository import IdentityRepository
from ..infrastructure.repositories.rate_limit_repository import RateLimitRepository
from ..infrastructure.repositories.subscription_repository import SubscriptionRepository
from ..infrastructure.repositories.user_repository import UserRepository
from ..presentation.api.routers import checkout_router
from ..presentation.api.routers import content_router
from ..presentation.api.routers import user_router
from ..presentation.api.routers import user_subscription_router
from ..presentation.api.routers import webhook_router
from ..presentation.middleware.route_guard import RouteGuardMiddleware
from ..services.access import ContentAccessService
from ..services.billing_events import BillingEventRouter
from ..services.rate_limiter import LoginRateLimiter
from ..services.subscription_service import SubscriptionService, build_plan_catalogue
from ..services.user_service import UserService
from ..services.webhook_verifier import WebhookVerifier

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    *,
    billing_gateway: Optional[BillingGateway] = None,
    content_gateway: Optional[ContentGateway] = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Alpha Blog",
        lifespan=_create_lifespan(settings, billing_gateway, content_gateway),
    )

    app.add_middleware(
        RouteGuardMiddleware,
        pattern=settings.protected_route_pattern,
        login_path=settings.login_path,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(webhook_router.router)
    app.include_router(checkout_router.router)
    app.include_router(user_router.router)
    app.include_router(user_subscription_router.router)
    app.include_router(content_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        container: ApplicationContainer = app.state.container  # type: ignore[attr-defined]
        return {"ok": True, "cms": container.settings.sanity_configured}

    return app


def _create_lifespan(
    settings: Settings,
    billing_gateway: Optional[BillingGateway],
    content_gateway: Optional[ContentGateway],
):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        if settings.jwt_secret == "change-me":
            logger.warning("JWT_SECRET is using the default value; set it before deploying.")

        db_path = ensure_database_dir(settings.database_path)
        subscription_repository = SubscriptionRepository(db_path)
        user_repository = UserRepository(db_path)
        identity_repository = IdentityRepository(db_path)
        rate_limit_repository = RateLimitRepository(db_path)

        billing = billing_gateway or StripeBillingGateway(settings.stripe_secret_key)
        content = content_gateway or SanityContentGateway(
            project_id=settings.sanity_project_id,
            dataset=settings.sanity_dataset,
            api_version=settings.sanity_api_version,
            token=settings.sanity_token,
        )

        login_rate_limiter = LoginRateLimiter(
            rate_limit_repository,
            ip_limit=settings.login_ip_limit,
            account_limit=settings.login_account_limit,
            window=timedelta(minutes=settings.login_lockout_minutes),
        )
        purged = login_rate_limiter.purge_expired()
        if purged:
            logger.info("Purged %s expired login attempts", purged)

        container = ApplicationContainer(
            settings=settings,
            subscription_repository=subscription_repository,
            webhook_verifier=WebhookVerifier(
                settings.stripe_webhook_secret,
                tolerance_seconds=settings.stripe_webhook_tolerance,
            ),
            billing_event_router=BillingEventRouter(subscription_repository, billing),
            subscription_service=SubscriptionService(
                subscription_repository,
                billing,
                site_url=settings.site_url,
                plans=build_plan_catalogue(
                    settings.stripe_price_id_monthly,
                    settings.stripe_price_id_yearly,
                ),
            ),
            content_access_service=ContentAccessService(content),
            user_service=UserService(
                user_repository,
                identity_repository,
                jwt_secret=settings.jwt_secret,
                jwt_expiration_hours=settings.jwt_expiration_hours,
            ),
            login_rate_limiter=login_rate_limiter,
        )

        app.state.container = container  # type: ignore[attr-defined]
        logger.info("Alpha Blog started (database %s)", db_path)

        try:
            yield
        finally:
            app.state.container = None  # type: ignore[attr-defined]

    return lifespan
