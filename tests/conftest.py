import copy
import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient

from alpha_blog.core.app_factory import create_application
from alpha_blog.core.config import Settings
from alpha_blog.domain.errors import BillingProviderError, ContentUnavailable
from alpha_blog.domain.models import ContentMetadata
from alpha_blog.infrastructure.repositories.subscription_repository import SubscriptionRepository

WEBHOOK_SECRET = "whsec_test_secret"
PRICE_MONTHLY = "price_monthly_test"
PRICE_YEARLY = "price_yearly_test"


class FakeBillingGateway:
    """In-memory stand-in for Stripe."""

    def __init__(self) -> None:
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.checkout_calls: List[Dict[str, Any]] = []
        self.retrieved: List[str] = []
        self.canceled: List[str] = []
        self.error: Optional[BillingProviderError] = None

    def create_checkout_session(
        self,
        *,
        price_id: str,
        customer_email: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> str:
        if self.error:
            raise self.error
        self.checkout_calls.append(
            {
                "price_id": price_id,
                "customer_email": customer_email,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": dict(metadata),
            }
        )
        return f"https://checkout.stripe.test/c/pay/cs_test_{len(self.checkout_calls)}"

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        if self.error:
            raise self.error
        self.retrieved.append(subscription_id)
        return copy.deepcopy(self.subscriptions[subscription_id])

    def cancel_at_period_end(self, subscription_id: str) -> Dict[str, Any]:
        if self.error:
            raise self.error
        self.canceled.append(subscription_id)
        subscription = self.subscriptions.setdefault(subscription_id, {"id": subscription_id})
        subscription["cancel_at_period_end"] = True
        return copy.deepcopy(subscription)


class FakeContentGateway:
    """In-memory CMS that records which bodies were requested."""

    def __init__(self) -> None:
        self.posts: Dict[str, ContentMetadata] = {}
        self.bodies: Dict[str, List[Any]] = {}
        self.body_requests: List[str] = []
        self.unavailable = False

    def add_post(self, slug: str, *, is_premium: bool, body: Optional[List[Any]] = None) -> None:
        self.posts[slug] = ContentMetadata(
            id=f"post-{slug}",
            slug=slug,
            title=slug.replace("-", " ").title(),
            is_premium=is_premium,
            excerpt=f"About {slug}",
        )
        self.bodies[slug] = body if body is not None else [{"_type": "block", "text": f"Body of {slug}"}]

    def get_metadata(self, slug: str) -> Optional[ContentMetadata]:
        if self.unavailable:
            raise ContentUnavailable("CMS down")
        return self.posts.get(slug)

    def get_body(self, slug: str) -> Optional[List[Any]]:
        if self.unavailable:
            raise ContentUnavailable("CMS down")
        self.body_requests.append(slug)
        return self.bodies.get(slug)


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now: datetime) -> FixedClock:
    return FixedClock(now)


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "app.db")


@pytest.fixture
def subscription_repository(db_path: str) -> SubscriptionRepository:
    return SubscriptionRepository(db_path)


@pytest.fixture
def billing() -> FakeBillingGateway:
    return FakeBillingGateway()


@pytest.fixture
def content() -> FakeContentGateway:
    return FakeContentGateway()


@pytest.fixture
def sign() -> Callable[..., str]:
    """Build a Stripe-Signature header for a raw body."""

    def _sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
        ts = int(time.time()) if timestamp is None else timestamp
        digest = hmac.new(
            secret.encode("utf-8"), f"{ts}.{payload}".encode("utf-8"), hashlib.sha256
        ).hexdigest()
        return f"t={ts},v1={digest}"

    return _sign


@pytest.fixture
def stripe_subscription() -> Callable[..., Dict[str, Any]]:
    """Build a Stripe subscription object as the API returns it."""

    def _build(
        subscription_id: str = "sub_123",
        *,
        status: str = "active",
        interval: str = "month",
        price_id: str = PRICE_MONTHLY,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
        user_id: Optional[int] = None,
        cancel_at_period_end: bool = False,
        period_on_items: bool = False,
    ) -> Dict[str, Any]:
        start = period_start or datetime.now(tz=timezone.utc) - timedelta(days=1)
        end = period_end or start + timedelta(days=30)
        item: Dict[str, Any] = {
            "id": f"si_{subscription_id}",
            "price": {"id": price_id, "recurring": {"interval": interval}},
        }
        subscription: Dict[str, Any] = {
            "id": subscription_id,
            "object": "subscription",
            "customer": "cus_123",
            "status": status,
            "cancel_at_period_end": cancel_at_period_end,
            "metadata": {"user_id": str(user_id)} if user_id is not None else {},
            "items": {"data": [item]},
        }
        period = {
            "current_period_start": int(start.timestamp()),
            "current_period_end": int(end.timestamp()),
        }
        if period_on_items:
            item.update(period)
        else:
            subscription.update(period)
        return subscription

    return _build


@pytest.fixture
def event_payload() -> Callable[..., str]:
    """Serialise a Stripe event envelope."""

    def _payload(
        event_type: str,
        data: Dict[str, Any],
        *,
        event_id: str = "evt_1",
        created: Optional[int] = None,
    ) -> str:
        return json.dumps(
            {
                "id": event_id,
                "object": "event",
                "type": event_type,
                "created": int(time.time()) if created is None else created,
                "data": {"object": data},
            }
        )

    return _payload


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "data" / "app.db"))
    monkeypatch.setenv("SITE_URL", "http://blog.test")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret-with-enough-length")
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setenv("STRIPE_PRICE_ID_MONTHLY", PRICE_MONTHLY)
    monkeypatch.setenv("STRIPE_PRICE_ID_YEARLY", PRICE_YEARLY)
    for key in ("STRIPE_SECRET_KEY", "SANITY_PROJECT_ID", "SANITY_TOKEN", "CORS_ALLOW_ORIGINS"):
        monkeypatch.delenv(key, raising=False)
    return Settings()


@pytest.fixture
def client(
    settings: Settings, billing: FakeBillingGateway, content: FakeContentGateway
) -> Iterator[TestClient]:
    app = create_application(settings, billing_gateway=billing, content_gateway=content)
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def register_and_login(client: TestClient) -> Callable[..., Dict[str, Any]]:
    """Create an account and sign in; the client keeps the session cookie."""

    def _register_and_login(email: str = "reader@example.com", password: str = "correct-horse") -> Dict[str, Any]:
        response = client.post("/api/users/register", json={"email": email, "password": password})
        assert response.status_code == 201, response.text
        response = client.post("/api/users/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()

    return _register_and_login
