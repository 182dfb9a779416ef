from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

PAYWALL_REQUIRED = "subscription_required"
PAYWALL_EXPIRED = "subscription_expired"


@dataclass(slots=True)
class ContentMetadata:
    id: str
    slug: str
    title: str
    is_premium: bool
    excerpt: Optional[str] = None
    published_at: Optional[datetime] = None


@dataclass(slots=True)
class AccessDecision:
    full_access: bool


@dataclass(slots=True)
class ContentPage:
    metadata: ContentMetadata
    decision: AccessDecision
    body: Optional[List[Any]] = None
    paywall: Optional[str] = None
