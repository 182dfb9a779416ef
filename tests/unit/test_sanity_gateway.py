from typing import Any, Dict, List, Optional

import pytest
import requests

from alpha_blog.domain.errors import ContentUnavailable
from alpha_blog.infrastructure.content.sanity_gateway import (
    BODY_QUERY,
    METADATA_QUERY,
    SanityContentGateway,
)


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, responses: List[Any]) -> None:
        self.headers: Dict[str, str] = {}
        self.calls: List[Dict[str, Any]] = []
        self._responses = responses

    def get(self, url: str, params: Optional[Dict[str, str]] = None, timeout: float = 0) -> FakeResponse:
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def gateway(session: FakeSession, token: Optional[str] = None, project_id: Optional[str] = "proj1") -> SanityContentGateway:
    return SanityContentGateway(project_id, "production", "2024-01-01", token=token, session=session)


class TestMetadata:
    def test_maps_projection(self) -> None:
        session = FakeSession(
            [
                FakeResponse(
                    {
                        "result": {
                            "id": "abc",
                            "slug": "btc-halving",
                            "title": "BTC Halving",
                            "excerpt": "Supply shock",
                            "isPremium": True,
                            "publishedAt": "2025-02-01T10:00:00Z",
                        }
                    }
                )
            ]
        )

        metadata = gateway(session).get_metadata("btc-halving")

        assert metadata.id == "abc"
        assert metadata.is_premium is True
        assert metadata.published_at.year == 2025
        call = session.calls[0]
        assert call["url"] == "https://proj1.apicdn.sanity.io/v2024-01-01/data/query/production"
        assert call["params"]["query"] == METADATA_QUERY
        assert call["params"]["$slug"] == '"btc-halving"'

    def test_missing_post(self) -> None:
        assert gateway(FakeSession([FakeResponse({"result": None})])).get_metadata("nope") is None

    def test_token_uses_live_api(self) -> None:
        session = FakeSession([FakeResponse({"result": None})])

        gateway(session, token="sk_test").get_metadata("x")

        assert session.headers["Authorization"] == "Bearer sk_test"
        assert session.calls[0]["url"].startswith("https://proj1.api.sanity.io/")


class TestBody:
    def test_body_query_is_separate(self) -> None:
        blocks = [{"_type": "block", "children": []}]
        session = FakeSession([FakeResponse({"result": blocks})])

        assert gateway(session).get_body("btc-halving") == blocks
        assert session.calls[0]["params"]["query"] == BODY_QUERY


class TestFailures:
    def test_transport_error(self) -> None:
        session = FakeSession([requests.ConnectionError("boom")])

        with pytest.raises(ContentUnavailable):
            gateway(session).get_metadata("x")

    def test_http_error(self) -> None:
        with pytest.raises(ContentUnavailable):
            gateway(FakeSession([FakeResponse({}, status_code=500)])).get_metadata("x")

    def test_invalid_json(self) -> None:
        with pytest.raises(ContentUnavailable):
            gateway(FakeSession([FakeResponse(ValueError("bad json"))])).get_body("x")

    def test_unconfigured_project_makes_no_requests(self) -> None:
        session = FakeSession([])

        assert gateway(session, project_id=None).get_metadata("x") is None
        assert session.calls == []
