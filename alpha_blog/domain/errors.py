"""Error taxonomy for the premium-access pipeline."""


class StoreError(Exception):
    """Raised when the entitlement or account store fails to read or write."""


class WebhookVerificationError(Exception):
    """Base class for billing webhook deliveries rejected at the boundary."""


class MissingSignature(WebhookVerificationError):
    """The delivery carried no signature header."""


class SignatureInvalid(WebhookVerificationError):
    """The signature does not match the raw body, or cannot be checked."""


class MalformedEvent(WebhookVerificationError):
    """The payload is authentic but not a usable event envelope."""


class AttributionError(Exception):
    """A billing event cannot be attributed to an application user."""


class BillingProviderError(Exception):
    """The billing provider rejected or failed a request."""


class ContentUnavailable(Exception):
    """The CMS could not be reached or returned an unusable response."""


class RateLimitExceeded(Exception):
    """Too many failed attempts for an identity within the window."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Too many attempts. Retry after {retry_after} seconds.")
        self.retry_after = retry_after


class AlreadySubscribedError(ValueError):
    """The user already holds a valid premium entitlement."""
