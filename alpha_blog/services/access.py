"""Premium content access decisions."""

import logging
from typing import Optional

from alpha_blog.domain.models.content import (
    PAYWALL_EXPIRED,
    PAYWALL_REQUIRED,
    AccessDecision,
    ContentMetadata,
    ContentPage,
)
from alpha_blog.domain.models.subscription import Entitlement
from alpha_blog.domain.ports.gateways import ContentGateway

logger = logging.getLogger(__name__)


def decide_access(content: ContentMetadata, entitlement: Entitlement) -> AccessDecision:
    """Free content is open to everyone; premium content needs a premium entitlement."""
    return AccessDecision(full_access=not content.is_premium or entitlement.is_premium)


class ContentAccessService:
    """Loads a post for a reader, fetching the body only when access is granted."""

    def __init__(self, content_gateway: ContentGateway):
        self.content_gateway = content_gateway

    def load_page(
        self,
        slug: str,
        entitlement: Entitlement,
        has_subscription_history: bool = False,
    ) -> Optional[ContentPage]:
        """
        Build the page model for a post.

        Args:
            slug: Post slug
            entitlement: The reader's current entitlement
            has_subscription_history: Whether the reader ever held a subscription

        Returns:
            ContentPage, or None if no post has this slug

        Raises:
            ContentUnavailable: If the CMS cannot be reached
        """
        metadata = self.content_gateway.get_metadata(slug)
        if metadata is None:
            return None

        decision = decide_access(metadata, entitlement)
        if not decision.full_access:
            paywall = PAYWALL_EXPIRED if has_subscription_history else PAYWALL_REQUIRED
            logger.debug("Paywall %s for premium post %s", paywall, slug)
            return ContentPage(metadata=metadata, decision=decision, paywall=paywall)

        body = self.content_gateway.get_body(slug)
        return ContentPage(metadata=metadata, decision=decision, body=body or [])
