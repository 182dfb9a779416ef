import pytest

from alpha_blog.domain.errors import ContentUnavailable
from alpha_blog.domain.models import ContentMetadata, Entitlement
from alpha_blog.domain.models.content import PAYWALL_EXPIRED, PAYWALL_REQUIRED
from alpha_blog.services.access import ContentAccessService, decide_access


def post(is_premium: bool) -> ContentMetadata:
    return ContentMetadata(id="p1", slug="p1", title="Post", is_premium=is_premium)


@pytest.mark.parametrize(
    "is_premium_content, is_premium_user, expected",
    [
        (False, False, True),
        (False, True, True),
        (True, False, False),
        (True, True, True),
    ],
)
def test_decision_table(is_premium_content: bool, is_premium_user: bool, expected: bool) -> None:
    decision = decide_access(post(is_premium_content), Entitlement(is_premium=is_premium_user))

    assert decision.full_access is expected


class TestLoadPage:
    def test_free_post_loads_body_for_anyone(self, content) -> None:
        content.add_post("free-post", is_premium=False)
        service = ContentAccessService(content)

        page = service.load_page("free-post", Entitlement.none())

        assert page.decision.full_access is True
        assert page.body == content.bodies["free-post"]
        assert page.paywall is None

    def test_premium_post_without_entitlement_never_fetches_body(self, content) -> None:
        content.add_post("alpha-call", is_premium=True)
        service = ContentAccessService(content)

        page = service.load_page("alpha-call", Entitlement.none())

        assert page.decision.full_access is False
        assert page.body is None
        assert page.paywall == PAYWALL_REQUIRED
        assert content.body_requests == []

    def test_lapsed_subscriber_sees_expired_paywall(self, content) -> None:
        content.add_post("alpha-call", is_premium=True)
        service = ContentAccessService(content)

        page = service.load_page("alpha-call", Entitlement.none(), has_subscription_history=True)

        assert page.paywall == PAYWALL_EXPIRED
        assert content.body_requests == []

    def test_premium_post_with_entitlement_loads_body(self, content) -> None:
        content.add_post("alpha-call", is_premium=True)
        service = ContentAccessService(content)

        page = service.load_page("alpha-call", Entitlement(is_premium=True))

        assert page.decision.full_access is True
        assert content.body_requests == ["alpha-call"]

    def test_unknown_slug_returns_none(self, content) -> None:
        assert ContentAccessService(content).load_page("nope", Entitlement.none()) is None

    def test_cms_failure_propagates(self, content) -> None:
        content.unavailable = True

        with pytest.raises(ContentUnavailable):
            ContentAccessService(content).load_page("anything", Entitlement.none())
