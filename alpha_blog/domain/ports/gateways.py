from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from ..models import ContentMetadata


class BillingGateway(Protocol):
    """Operations the application needs from the billing provider."""

    def create_checkout_session(
        self,
        *,
        price_id: str,
        customer_email: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> str:
        """Start a hosted subscription checkout and return its redirect URL."""
        ...

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        ...

    def cancel_at_period_end(self, subscription_id: str) -> Dict[str, Any]:
        ...


class ContentGateway(Protocol):
    """Read access to CMS-owned posts, split into cheap metadata and gated body."""

    def get_metadata(self, slug: str) -> Optional[ContentMetadata]:
        ...

    def get_body(self, slug: str) -> Optional[List[Any]]:
        ...
