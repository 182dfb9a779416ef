"""Sliding-window limits on failed login attempts."""

import logging
import math
from datetime import timedelta

from alpha_blog.core.clock import Clock, utc_now
from alpha_blog.domain.errors import RateLimitExceeded
from alpha_blog.domain.ports.persistence import RateLimitStore

logger = logging.getLogger(__name__)


class LoginRateLimiter:
    """
    Limits failed logins per client IP and per account.

    Attempts are kept in a durable store, so limits hold across restarts and
    across every worker sharing the database.
    """

    def __init__(
        self,
        store: RateLimitStore,
        ip_limit: int = 5,
        account_limit: int = 3,
        window: timedelta = timedelta(minutes=15),
        clock: Clock = utc_now,
    ):
        self.store = store
        self.ip_limit = ip_limit
        self.account_limit = account_limit
        self.window = window
        self._clock = clock

    @staticmethod
    def ip_key(ip: str) -> str:
        return f"login:ip:{ip}"

    @staticmethod
    def account_key(email: str) -> str:
        return f"login:account:{email.strip().lower()}"

    def check(self, ip: str, email: str) -> None:
        """
        Refuse the attempt if either key is over its limit.

        Raises:
            RateLimitExceeded: With the seconds until the oldest attempt leaves the window
        """
        now = self._clock()
        since = now - self.window
        for key, limit in (
            (self.ip_key(ip), self.ip_limit),
            (self.account_key(email), self.account_limit),
        ):
            attempts = self.store.attempts_since(key, since)
            if len(attempts) >= limit:
                # The window reopens when the oldest counted attempt expires.
                reopens_at = attempts[len(attempts) - limit] + self.window
                retry_after = max(1, math.ceil((reopens_at - now).total_seconds()))
                logger.warning("Login rate limit hit for %s (retry in %ss)", key, retry_after)
                raise RateLimitExceeded(retry_after)

    def record_failure(self, ip: str, email: str) -> None:
        now = self._clock()
        # Attempts outside the window no longer count anywhere.
        self.store.purge_before(now - self.window)
        self.store.record(self.ip_key(ip), now)
        self.store.record(self.account_key(email), now)

    def reset(self, ip: str, email: str) -> None:
        """Forget failed attempts for the client IP and the account after a successful login."""
        self.store.clear(self.ip_key(ip))
        self.store.clear(self.account_key(email))

    def purge_expired(self) -> int:
        return self.store.purge_before(self._clock() - self.window)
