"""User domain model for reader accounts."""

from datetime import datetime, timezone
from typing import Optional


class User:
    """
    User entity representing a reader account.

    Attributes:
        id: Canonical internal identifier, used in sessions and billing metadata
        email: User email address (unique, lower-cased)
        password_hash: bcrypt hash of the password
        name: Optional display name
        is_active: Whether the account may sign in
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        email: str,
        password_hash: str,
        name: Optional[str] = None,
        is_active: bool = True,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.email = email
        self.password_hash = password_hash
        self.name = name
        self.is_active = is_active
        self.created_at = created_at or datetime.now(tz=timezone.utc)
        self.updated_at = updated_at or datetime.now(tz=timezone.utc)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} active={self.is_active}>"
