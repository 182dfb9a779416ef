"""Repository for Subscription persistence."""

import logging
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, List, Mapping, Optional, Sequence

from alpha_blog.domain.errors import StoreError
from alpha_blog.domain.models.subscription import Subscription
from alpha_blog.infrastructure.persistence.sqlite import from_db_timestamp, to_db_timestamp

logger = logging.getLogger(__name__)

WRITABLE_FIELDS = frozenset(
    {
        "user_id",
        "stripe_customer_id",
        "status",
        "plan_type",
        "price_id",
        "current_period_start",
        "current_period_end",
        "cancel_at_period_end",
        "canceled_at",
    }
)
INSERT_REQUIRED_FIELDS = frozenset(
    {
        "user_id",
        "stripe_customer_id",
        "status",
        "plan_type",
        "price_id",
        "current_period_start",
        "current_period_end",
    }
)
_DATETIME_FIELDS = frozenset({"current_period_start", "current_period_end", "canceled_at"})


class SubscriptionRepository:
    """Entitlement store backed by SQLite, keyed by Stripe subscription id."""

    def __init__(self, db_path: str):
        self.db_path = str(db_path)
        self._initialize_table()

    def _initialize_table(self) -> None:
        """Create subscriptions table if it doesn't exist."""
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    stripe_subscription_id TEXT UNIQUE NOT NULL,
                    stripe_customer_id TEXT NOT NULL,
                    status TEXT NOT NULL CHECK (status IN (
                        'active', 'canceled', 'past_due', 'trialing',
                        'incomplete', 'incomplete_expired', 'unpaid'
                    )),
                    plan_type TEXT NOT NULL CHECK (plan_type IN ('monthly', 'yearly')),
                    price_id TEXT NOT NULL,
                    current_period_start TEXT NOT NULL,
                    current_period_end TEXT NOT NULL,
                    cancel_at_period_end INTEGER NOT NULL DEFAULT 0,
                    canceled_at TEXT,
                    last_event_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_subscriptions_user_status "
                "ON subscriptions(user_id, status, current_period_end)"
            )

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run statements in one immediate transaction; wrap sqlite failures in StoreError."""
        try:
            conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=10)
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to open subscription store: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise StoreError(f"Subscription store operation failed: {exc}") from exc
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def _fetch(self, query: str, params: Sequence[Any]) -> List[sqlite3.Row]:
        try:
            with closing(sqlite3.connect(self.db_path, timeout=10)) as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Subscription store read failed: {exc}") from exc
        return rows

    # Reads ----------------------------------------------------------------
    def get_active_entitlement(self, user_id: int) -> Optional[Subscription]:
        """Most relevant active or trialing subscription for a user, if any."""
        rows = self._fetch(
            """
            SELECT * FROM subscriptions
            WHERE user_id = ? AND status IN ('active', 'trialing')
            ORDER BY current_period_end DESC, id DESC
            LIMIT 1
            """,
            (user_id,),
        )
        return self._row_to_subscription(rows[0]) if rows else None

    def get_by_stripe_subscription_id(
        self, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        """Get subscription by Stripe subscription ID."""
        rows = self._fetch(
            "SELECT * FROM subscriptions WHERE stripe_subscription_id = ?",
            (stripe_subscription_id,),
        )
        return self._row_to_subscription(rows[0]) if rows else None

    def get_latest_for_user(self, user_id: int) -> Optional[Subscription]:
        """Most recently created subscription for a user, whatever its status."""
        rows = self._fetch(
            """
            SELECT * FROM subscriptions
            WHERE user_id = ?
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (user_id,),
        )
        return self._row_to_subscription(rows[0]) if rows else None

    def list_by_user_id(self, user_id: int) -> List[Subscription]:
        """List all subscriptions for a user, newest first."""
        rows = self._fetch(
            "SELECT * FROM subscriptions WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user_id,),
        )
        return [self._row_to_subscription(row) for row in rows]

    # Writes ---------------------------------------------------------------
    def upsert_by_external_id(
        self,
        stripe_subscription_id: str,
        fields: Mapping[str, Any],
        event_created: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        """
        Insert the subscription if absent, otherwise update the given fields.

        Args:
            stripe_subscription_id: Stripe subscription ID used as the upsert key
            fields: Column values to write (see WRITABLE_FIELDS)
            event_created: Creation time of the billing event driving the write

        Returns:
            The stored subscription, or None when the row is absent and the
            fields are not enough to create it.

        Raises:
            StoreError: If the underlying store fails
        """
        unknown = set(fields) - WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported subscription fields: {', '.join(sorted(unknown))}")

        values = {key: self._encode(key, value) for key, value in fields.items()}
        event_at = to_db_timestamp(event_created) if event_created else None
        now = to_db_timestamp(datetime.now(tz=timezone.utc))
        select = "SELECT * FROM subscriptions WHERE stripe_subscription_id = ?"

        with self._transaction() as conn:
            row = conn.execute(select, (stripe_subscription_id,)).fetchone()

            if row is None:
                missing = INSERT_REQUIRED_FIELDS - set(values)
                if missing:
                    logger.warning(
                        "No stored subscription %s and not enough data to create it (missing %s)",
                        stripe_subscription_id,
                        ", ".join(sorted(missing)),
                    )
                    return None
                columns = ["stripe_subscription_id", *values, "last_event_at", "created_at", "updated_at"]
                params = [stripe_subscription_id, *values.values(), event_at, now, now]
                conn.execute(
                    f"INSERT INTO subscriptions ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' * len(columns))})",
                    params,
                )
            else:
                if self._is_stale(row, event_created):
                    logger.info(
                        "Skipping stale write for subscription %s (event %s older than %s)",
                        stripe_subscription_id,
                        event_at,
                        row["last_event_at"],
                    )
                    return self._row_to_subscription(row)

                if row["canceled_at"] is not None and values.get("status", "canceled") != "canceled":
                    logger.info(
                        "Subscription %s is terminated; ignoring status %s",
                        stripe_subscription_id,
                        values["status"],
                    )
                    values.pop("status")

                assignments = [f"{column} = ?" for column in values]
                params = list(values.values())
                if event_at:
                    assignments.append("last_event_at = ?")
                    params.append(event_at)
                assignments.append("updated_at = ?")
                params.extend([now, stripe_subscription_id])
                conn.execute(
                    f"UPDATE subscriptions SET {', '.join(assignments)} "
                    "WHERE stripe_subscription_id = ?",
                    params,
                )

            row = conn.execute(select, (stripe_subscription_id,)).fetchone()

        return self._row_to_subscription(row)

    def mark_terminated(
        self,
        stripe_subscription_id: str,
        terminated_at: datetime,
        event_created: Optional[datetime] = None,
    ) -> bool:
        """Set status to canceled and record when; the first termination time wins."""
        event_at = to_db_timestamp(event_created) if event_created else None
        now = to_db_timestamp(datetime.now(tz=timezone.utc))
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE subscriptions
                SET status = 'canceled',
                    canceled_at = COALESCE(canceled_at, ?),
                    last_event_at = CASE
                        WHEN ? IS NOT NULL AND (last_event_at IS NULL OR ? > last_event_at) THEN ?
                        ELSE last_event_at
                    END,
                    updated_at = ?
                WHERE stripe_subscription_id = ?
                """,
                (
                    to_db_timestamp(terminated_at),
                    event_at,
                    event_at,
                    event_at,
                    now,
                    stripe_subscription_id,
                ),
            )
            matched = cursor.rowcount > 0

        if not matched:
            logger.warning("No stored subscription %s to terminate", stripe_subscription_id)
        return matched

    # Helpers --------------------------------------------------------------
    @staticmethod
    def _encode(field: str, value: Any) -> Any:
        if field in _DATETIME_FIELDS:
            return to_db_timestamp(value) if value is not None else None
        if field == "cancel_at_period_end":
            return int(bool(value))
        return value

    @staticmethod
    def _is_stale(row: sqlite3.Row, event_created: Optional[datetime]) -> bool:
        stored = from_db_timestamp(row["last_event_at"])
        if event_created is None or stored is None:
            return False
        if event_created.tzinfo is None:
            event_created = event_created.replace(tzinfo=timezone.utc)
        return event_created < stored

    def _row_to_subscription(self, row: sqlite3.Row) -> Subscription:
        """Convert database row to Subscription entity."""
        return Subscription(
            id=row["id"],
            user_id=row["user_id"],
            stripe_subscription_id=row["stripe_subscription_id"],
            stripe_customer_id=row["stripe_customer_id"],
            status=row["status"],
            plan_type=row["plan_type"],
            price_id=row["price_id"],
            current_period_start=from_db_timestamp(row["current_period_start"]),
            current_period_end=from_db_timestamp(row["current_period_end"]),
            cancel_at_period_end=bool(row["cancel_at_period_end"]),
            canceled_at=from_db_timestamp(row["canceled_at"]),
            last_event_at=from_db_timestamp(row["last_event_at"]),
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
        )
