"""API router for user authentication and management."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ....core.config import Settings
from ....core.dependencies import (
    get_login_rate_limiter,
    get_settings,
    get_subscription_service,
    get_user_service,
)
from ....domain.errors import RateLimitExceeded
from ....domain.models import User
from ....services.rate_limiter import LoginRateLimiter
from ....services.subscription_service import SubscriptionService
from ....services.user_service import UserService
from ..dependencies import get_current_user
from ..schemas.user_schemas import (
    UserLoginRequest,
    UserLoginResponse,
    UserProfileResponse,
    UserRegisterRequest,
    UserRegisterResponse,
    UserResponse,
)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/register", response_model=UserRegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: UserRegisterRequest,
    user_service: UserService = Depends(get_user_service),
) -> UserRegisterResponse:
    """Register a new user."""
    try:
        user = user_service.register(
            email=payload.email,
            password=payload.password,
            name=payload.name,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return UserRegisterResponse(
        user_id=user.id,
        email=user.email,
        message="Registration successful.",
    )


@router.post("/login", response_model=UserLoginResponse)
def login(
    payload: UserLoginRequest,
    request: Request,
    response: Response,
    user_service: UserService = Depends(get_user_service),
    rate_limiter: LoginRateLimiter = Depends(get_login_rate_limiter),
    settings: Settings = Depends(get_settings),
) -> UserLoginResponse:
    """Login, get an access token and set the session cookie."""
    client_ip = request.client.host if request.client else "unknown"

    try:
        rate_limiter.check(client_ip, payload.email)
    except RateLimitExceeded as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(exc),
            headers={"Retry-After": str(exc.retry_after)},
        )

    user = user_service.authenticate(payload.email, payload.password)

    if not user:
        rate_limiter.record_failure(client_ip, payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    rate_limiter.reset(client_ip, payload.email)
    access_token = user_service.create_token(user)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=access_token,
        httponly=True,
        max_age=settings.jwt_expiration_hours * 3600,
        samesite="lax",
        secure=settings.site_url.startswith("https://"),
    )

    return UserLoginResponse(
        access_token=access_token,
        user=UserResponse(
            id=user.id,
            email=user.email,
            name=user.name,
            created_at=user.created_at,
        ),
    )


@router.post("/logout")
def logout(response: Response, settings: Settings = Depends(get_settings)) -> dict:
    """Clear the session cookie."""
    response.delete_cookie(key=settings.session_cookie_name)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserProfileResponse)
def get_profile(
    user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> UserProfileResponse:
    """Get current user profile."""
    return UserProfileResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        is_premium=subscription_service.has_active_subscription(user.id),
        created_at=user.created_at,
    )
