from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...core.dependencies import get_settings, get_user_service
from ...domain.models import User
from ...services.user_service import UserService

_bearer_scheme = HTTPBearer(auto_error=False)


def resolve_session_token(request: Request, cookie_name: str) -> Optional[str]:
    """Session token from the session cookie, or failing that a Bearer header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    user_service: UserService = Depends(get_user_service),
    settings=Depends(get_settings),
) -> User:
    """Dependency to get current authenticated user."""
    token = request.cookies.get(settings.session_cookie_name) or (
        credentials.credentials if credentials else None
    )
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    payload = user_service.verify_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user = user_service.get_by_id(payload["user_id"])
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


def get_optional_user_id(
    request: Request,
    user_service: UserService = Depends(get_user_service),
    settings=Depends(get_settings),
) -> Optional[int]:
    """User id set by the route guard, or from a valid session on unguarded routes."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is not None:
        return user_id

    token = resolve_session_token(request, settings.session_cookie_name)
    if not token:
        return None
    payload = user_service.verify_token(token)
    return payload["user_id"] if payload else None
