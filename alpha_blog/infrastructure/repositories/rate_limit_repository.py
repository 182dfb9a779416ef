"""SQLite-backed counters for login rate limiting."""

import sqlite3
from datetime import datetime
from typing import List

from ..persistence.sqlite import from_db_timestamp, to_db_timestamp


class RateLimitRepository:
    """Keyed attempt log with sliding-window reads, shared by every process using the database."""

    def __init__(self, db_path: str):
        self.db_path = str(db_path)
        self._initialize_table()

    def _initialize_table(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS rate_limit_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    key TEXT NOT NULL,
                    occurred_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_rate_limit_events_key "
                "ON rate_limit_events(key, occurred_at)"
            )
            conn.commit()
        conn.close()

    def record(self, key: str, occurred_at: datetime) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO rate_limit_events (key, occurred_at) VALUES (?, ?)",
                (key, to_db_timestamp(occurred_at)),
            )
            conn.commit()
        conn.close()

    def attempts_since(self, key: str, since: datetime) -> List[datetime]:
        """Attempt times for a key after ``since``, oldest first."""
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT occurred_at FROM rate_limit_events
                WHERE key = ? AND occurred_at > ?
                ORDER BY occurred_at ASC
                """,
                (key, to_db_timestamp(since)),
            ).fetchall()
        conn.close()
        return [from_db_timestamp(row[0]) for row in rows]

    def clear(self, key: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM rate_limit_events WHERE key = ?", (key,))
            conn.commit()
        conn.close()

    def purge_before(self, cutoff: datetime) -> int:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM rate_limit_events WHERE occurred_at <= ?",
                (to_db_timestamp(cutoff),),
            )
            conn.commit()
            removed = cursor.rowcount
        conn.close()
        return removed
