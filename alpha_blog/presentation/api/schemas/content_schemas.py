"""Pydantic schemas for content pages."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel


class ContentMetadataResponse(BaseModel):
    id: str
    slug: str
    title: str
    excerpt: Optional[str]
    is_premium: bool
    published_at: Optional[datetime]


class ContentPageResponse(BaseModel):
    """Page model: full body when access is granted, otherwise the paywall variant."""

    metadata: ContentMetadataResponse
    full_access: bool
    body: Optional[List[Any]] = None
    paywall: Optional[str] = None
