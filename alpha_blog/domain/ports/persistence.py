from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional, Protocol, Tuple

from ..models import Subscription, User


class SubscriptionStore(Protocol):
    """Entitlement store: subscription records keyed by user and Stripe subscription id."""

    def get_active_entitlement(self, user_id: int) -> Optional[Subscription]:
        ...

    def get_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        ...

    def get_latest_for_user(self, user_id: int) -> Optional[Subscription]:
        ...

    def upsert_by_external_id(
        self,
        stripe_subscription_id: str,
        fields: Mapping[str, Any],
        event_created: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        ...

    def mark_terminated(
        self,
        stripe_subscription_id: str,
        terminated_at: datetime,
        event_created: Optional[datetime] = None,
    ) -> bool:
        ...


class UserRepository(Protocol):
    """Persistence functions related to reader accounts."""

    def create(
        self,
        email: str,
        password_hash: str,
        name: Optional[str] = None,
        identity: Optional[Tuple[str, str]] = None,
    ) -> User:
        ...

    def get_by_id(self, user_id: int) -> Optional[User]:
        ...

    def get_by_email(self, email: str) -> Optional[User]:
        ...


class IdentityRepository(Protocol):
    """Maps identities issued by login providers to canonical user ids."""

    def resolve(self, provider: str, subject: str) -> Optional[int]:
        ...


class RateLimitStore(Protocol):
    """Durable keyed counters with sliding-window expiry."""

    def record(self, key: str, occurred_at: datetime) -> None:
        ...

    def attempts_since(self, key: str, since: datetime) -> List[datetime]:
        ...

    def clear(self, key: str) -> None:
        ...

    def purge_before(self, cutoff: datetime) -> int:
        ...
