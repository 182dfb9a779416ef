"""Repository mapping login-provider identities to canonical user ids."""

import sqlite3
from typing import Optional


class IdentityRepository:
    """
    Explicit identity mapping table.

    Each login provider issues its own opaque subject (for password logins the
    normalised email). Rows are written together with their user at
    registration. Sessions are issued against the internal user id that this
    table resolves to, never against the provider's subject.
    """

    def __init__(self, db_path: str):
        self.db_path = str(db_path)
        self._initialize_table()

    def _initialize_table(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS identities (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    provider TEXT NOT NULL,
                    subject TEXT NOT NULL,
                    user_id INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE(provider, subject)
                )
            """)
            conn.commit()
        conn.close()

    def resolve(self, provider: str, subject: str) -> Optional[int]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT user_id FROM identities WHERE provider = ? AND subject = ?",
                (provider, subject),
            ).fetchone()
        conn.close()
        return row[0] if row else None
