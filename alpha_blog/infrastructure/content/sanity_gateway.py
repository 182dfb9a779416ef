"""Sanity CMS adapter for post metadata and bodies."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from ...domain.errors import ContentUnavailable
from ...domain.models import ContentMetadata

logger = logging.getLogger(__name__)

METADATA_QUERY = """*[_type == "post" && slug.current == $slug][0] {
  "id": _id,
  "slug": slug.current,
  title,
  excerpt,
  isPremium,
  publishedAt
}"""

BODY_QUERY = """*[_type == "post" && slug.current == $slug][0].content"""


class SanityContentGateway:
    """
    Reads posts through Sanity's HTTP query API.

    Metadata and body are two separate queries: the body projection is only
    ever requested after the caller has decided the reader may see it.
    """

    def __init__(
        self,
        project_id: Optional[str],
        dataset: str = "production",
        api_version: str = "2024-01-01",
        token: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._project_id = project_id
        self._dataset = dataset
        self._api_version = api_version
        self._timeout = timeout
        self._session = session or requests.Session()
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"
        # Authenticated queries must bypass the CDN.
        host = "api.sanity.io" if token else "apicdn.sanity.io"
        self._url = f"https://{project_id}.{host}/v{api_version}/data/query/{dataset}"

    @property
    def configured(self) -> bool:
        return bool(self._project_id)

    def get_metadata(self, slug: str) -> Optional[ContentMetadata]:
        result = self._query(METADATA_QUERY, slug)
        if not result:
            return None
        return ContentMetadata(
            id=result["id"],
            slug=result.get("slug") or slug,
            title=result.get("title") or "",
            is_premium=bool(result.get("isPremium")),
            excerpt=result.get("excerpt"),
            published_at=_parse_datetime(result.get("publishedAt")),
        )

    def get_body(self, slug: str) -> Optional[List[Any]]:
        result = self._query(BODY_QUERY, slug)
        return result if isinstance(result, list) else None

    def _query(self, query: str, slug: str) -> Any:
        if not self.configured:
            logger.debug("Sanity is not configured; treating %s as missing", slug)
            return None

        params = {"query": query, "$slug": json.dumps(slug)}
        try:
            response = self._session.get(self._url, params=params, timeout=self._timeout)
            response.raise_for_status()
            payload: Dict[str, Any] = response.json()
        except requests.RequestException as exc:
            logger.error("Sanity query failed for %s: %s", slug, exc)
            raise ContentUnavailable(f"CMS request failed: {exc}") from exc
        except ValueError as exc:
            logger.error("Sanity returned invalid JSON for %s", slug)
            raise ContentUnavailable("CMS returned an invalid response") from exc

        return payload.get("result")


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
