"""Service for user authentication and management."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from alpha_blog.domain.models.user import User
from alpha_blog.domain.ports.persistence import IdentityRepository, UserRepository

logger = logging.getLogger(__name__)

CREDENTIALS_PROVIDER = "credentials"

# bcrypt only reads the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Service for managing user authentication and registration."""

    def __init__(
        self,
        user_repository: UserRepository,
        identity_repository: IdentityRepository,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        jwt_expiration_hours: int = 24,
    ):
        self.user_repository = user_repository
        self.identity_repository = identity_repository
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.jwt_expiration_hours = jwt_expiration_hours

    def register(self, email: str, password: str, name: Optional[str] = None) -> User:
        """
        Register a new user.

        Args:
            email: User email
            password: Plain text password
            name: Optional display name

        Returns:
            Created User

        Raises:
            ValueError: If email already exists or the password is too long
        """
        email = normalize_email(email)
        if self.user_repository.get_by_email(email):
            raise ValueError("Email already registered")

        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        password_hash = bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt()
        ).decode("utf-8")

        user = self.user_repository.create(
            email=email,
            password_hash=password_hash,
            name=name,
            identity=(CREDENTIALS_PROVIDER, email),
        )
        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user with email and password.

        The credentials identity is resolved to the internal user id here, once,
        so sessions never carry the provider's subject.

        Returns:
            User if authenticated, None otherwise
        """
        user_id = self.identity_repository.resolve(CREDENTIALS_PROVIDER, normalize_email(email))
        if user_id is None:
            return None

        user = self.user_repository.get_by_id(user_id)
        if not user or not user.is_active:
            return None

        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            return None

        if not bcrypt.checkpw(
            password.encode("utf-8"), user.password_hash.encode("utf-8")
        ):
            return None

        return user

    def create_token(self, user: User) -> str:
        """
        Create JWT token for user.

        Args:
            user: User entity

        Returns:
            JWT token string
        """
        now = datetime.now(tz=timezone.utc)
        payload = {
            "user_id": user.id,
            "email": user.email,
            "exp": now + timedelta(hours=self.jwt_expiration_hours),
            "iat": now,
        }

        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def verify_token(self, token: str) -> Optional[dict]:
        """
        Verify and decode JWT token.

        Returns:
            Decoded payload if valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token, self.jwt_secret, algorithms=[self.jwt_algorithm]
            )
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

        if not isinstance(payload.get("user_id"), int):
            return None
        return payload

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return self.user_repository.get_by_id(user_id)
