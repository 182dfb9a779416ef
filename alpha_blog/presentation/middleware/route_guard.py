"""Redirects unauthenticated requests for protected routes to the login page."""

import logging
import re
from typing import Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from ..api.dependencies import resolve_session_token

logger = logging.getLogger(__name__)


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """
    Authentication check in front of protected paths.

    Only authentication is checked here. Whether a reader may see a given post
    is decided per item, once its metadata is known.
    """

    def __init__(self, app, pattern: str = r"^/content/[^/]+$", login_path: str = "/login"):
        super().__init__(app)
        self.pattern = re.compile(pattern)
        self.login_path = login_path

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.pattern.match(request.url.path):
            return await call_next(request)

        user_id = self._authenticated_user_id(request)
        if user_id is None:
            callback = request.url.path
            if request.url.query:
                callback = f"{callback}?{request.url.query}"
            logger.debug("Redirecting unauthenticated request for %s", callback)
            return RedirectResponse(
                url=f"{self.login_path}?{urlencode({'callbackUrl': callback})}",
                status_code=307,
            )

        request.state.user_id = user_id
        return await call_next(request)

    @staticmethod
    def _authenticated_user_id(request: Request) -> Optional[int]:
        container = getattr(request.app.state, "container", None)
        if container is None:
            return None
        token = resolve_session_token(request, container.settings.session_cookie_name)
        if not token:
            return None
        payload = container.user_service.verify_token(token)
        return payload["user_id"] if payload else None
