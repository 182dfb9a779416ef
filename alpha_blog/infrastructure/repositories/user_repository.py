"""Repository for User persistence."""

import sqlite3
from datetime import datetime, timezone
from typing import Optional, Tuple

from alpha_blog.domain.models.user import User


class UserRepository:
    """Repository for managing User entities in SQLite."""

    def __init__(self, db_path: str):
        self.db_path = str(db_path)
        self._initialize_table()

    def _initialize_table(self) -> None:
        """Create users table if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT UNIQUE NOT NULL,
                    password_hash TEXT NOT NULL,
                    name TEXT,
                    is_active INTEGER DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)"
            )
            conn.commit()
        conn.close()

    def create(
        self,
        email: str,
        password_hash: str,
        name: Optional[str] = None,
        identity: Optional[Tuple[str, str]] = None,
    ) -> User:
        """
        Create a new user.

        When ``identity`` is a ``(provider, subject)`` pair, its row in the
        ``identities`` table is written in the same transaction, so a user never
        exists without the identity it registered with.

        Raises:
            ValueError: If the email or the identity is already taken
        """
        now = datetime.now(tz=timezone.utc).isoformat()

        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                cursor = conn.execute(
                    """
                    INSERT INTO users (email, password_hash, name, is_active, created_at, updated_at)
                    VALUES (?, ?, ?, 1, ?, ?)
                    """,
                    (email, password_hash, name, now, now),
                )
                user_id = cursor.lastrowid
                if identity is not None:
                    provider, subject = identity
                    conn.execute(
                        """
                        INSERT INTO identities (provider, subject, user_id, created_at)
                        VALUES (?, ?, ?, ?)
                        """,
                        (provider, subject, user_id, now),
                    )
        except sqlite3.IntegrityError as exc:
            raise ValueError("Email already registered") from exc
        finally:
            conn.close()

        return User(
            id=user_id,
            email=email,
            password_hash=password_hash,
            name=name,
            is_active=True,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        return self._fetch_one("SELECT * FROM users WHERE email = ?", (email,))

    def _fetch_one(self, query: str, params: tuple) -> Optional[User]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(query, params).fetchone()
        conn.close()

        if not row:
            return None

        return self._row_to_user(row)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        """Convert database row to User entity."""
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            name=row["name"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
