"""Content pages with premium gating."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ....core.dependencies import get_content_access_service, get_subscription_service
from ....domain.errors import ContentUnavailable, StoreError
from ....services.access import ContentAccessService
from ....services.subscription_service import SubscriptionService
from ..dependencies import get_optional_user_id
from ..schemas.content_schemas import ContentMetadataResponse, ContentPageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["content"])


@router.get("/{slug}", response_model=ContentPageResponse)
def get_content_page(
    slug: str,
    user_id: Optional[int] = Depends(get_optional_user_id),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
    access_service: ContentAccessService = Depends(get_content_access_service),
) -> ContentPageResponse:
    """Post page: metadata first, then the body only if the reader may see it."""
    try:
        entitlement = subscription_service.get_entitlement(user_id)
        has_history = (
            user_id is not None and subscription_service.get_user_subscription(user_id) is not None
        )
        page = access_service.load_page(slug, entitlement, has_history)
    except (ContentUnavailable, StoreError) as exc:
        logger.error("Unable to load content %s: %s", slug, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Content temporarily unavailable",
        ) from exc

    if page is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

    metadata = page.metadata
    return ContentPageResponse(
        metadata=ContentMetadataResponse(
            id=metadata.id,
            slug=metadata.slug,
            title=metadata.title,
            excerpt=metadata.excerpt,
            is_premium=metadata.is_premium,
            published_at=metadata.published_at,
        ),
        full_access=page.decision.full_access,
        body=page.body,
        paywall=page.paywall,
    )
