"""
Notification Service
====================
Host-side notification interface plus a local SQLite-backed queue.

The scheduler only ever talks to INotificationService; delivery timing
belongs to the host.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from booknest.errors import NotificationSchedulingError

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_TITLE = "Deadline Reminder"
DEFAULT_REMINDER_BODY = 'Your book "{title}" is due!'


@dataclass(frozen=True)
class ReminderPayload:
    """Content shown when a reminder fires."""
    title: str
    body: str

    @classmethod
    def for_book(
        cls,
        book_title: str,
        title: str = DEFAULT_REMINDER_TITLE,
        body_template: str = DEFAULT_REMINDER_BODY
    ) -> "ReminderPayload":
        return cls(title=title, body=body_template.format(title=book_title))


@dataclass(frozen=True)
class ScheduledNotification:
    """A trigger waiting in the host queue."""
    id: int
    payload: ReminderPayload
    trigger_at: datetime
    created_at: datetime


class INotificationService(ABC):
    """
    Abstract host notification service.

    Implementations:
        - SQLiteNotificationService: persistent local queue
    """

    @abstractmethod
    def schedule(self, payload: ReminderPayload, trigger_at: datetime) -> int:
        """
        Schedule a notification to fire at trigger_at.

        Returns:
            Host identifier of the scheduled notification

        Raises:
            NotificationSchedulingError: If the host rejects the request
        """
        pass

    @abstractmethod
    def cancel_all(self) -> int:
        """
        Cancel every pending notification.

        Returns:
            Number of notifications cancelled
        """
        pass

    def pending(self) -> list[ScheduledNotification]:
        """Queued notifications. Hosts that do not expose their queue return []."""
        return []

    def pop_due(self, now: datetime = None) -> list[ScheduledNotification]:
        """Notifications due by now. Hosts that deliver on their own return []."""
        return []


class SQLiteNotificationService(INotificationService):
    """
    Local notification host backed by a SQLite table.

    Pending triggers survive restarts; pop_due() hands back the ones a
    device would have delivered by now.
    """

    def __init__(
        self,
        db_path: Path | str = "data/booknest.db",
        clock: Callable[[], datetime] = datetime.now
    ):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._init_schema()

    @contextmanager
    def _connection(self):
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise NotificationSchedulingError("Notification store unavailable", details=str(e)) from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise NotificationSchedulingError("Notification store failed", details=str(e)) from e
        finally:
            conn.close()

    def _init_schema(self):
        with self._connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS scheduled_notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    body TEXT NOT NULL,
                    trigger_at TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_notifications_trigger ON scheduled_notifications(trigger_at);
            """)

    def _row_to_notification(self, row: sqlite3.Row) -> ScheduledNotification:
        return ScheduledNotification(
            id=row["id"],
            payload=ReminderPayload(title=row["title"], body=row["body"]),
            trigger_at=datetime.fromisoformat(row["trigger_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def schedule(self, payload: ReminderPayload, trigger_at: datetime) -> int:
        """Queue a notification."""
        with self._connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO scheduled_notifications (title, body, trigger_at, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (payload.title, payload.body,
                 trigger_at.isoformat(timespec="microseconds"),
                 self._clock().isoformat(timespec="microseconds"))
            )
            return cursor.lastrowid

    def cancel_all(self) -> int:
        """Drop every queued notification."""
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM scheduled_notifications")
            count = cursor.rowcount
        logger.info(f"Cancelled {count} scheduled notifications")
        return count

    def pending(self) -> list[ScheduledNotification]:
        """Queued notifications, soonest first."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM scheduled_notifications ORDER BY trigger_at, id"
            ).fetchall()
            return [self._row_to_notification(row) for row in rows]

    def pop_due(self, now: datetime = None) -> list[ScheduledNotification]:
        """
        Remove and return notifications whose trigger time has passed.

        Args:
            now: Reference instant, defaults to the service clock

        Returns:
            Delivered notifications, oldest trigger first
        """
        cutoff = (now or self._clock()).isoformat(timespec="microseconds")
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM scheduled_notifications
                WHERE trigger_at <= ?
                ORDER BY trigger_at, id
                """,
                (cutoff,)
            ).fetchall()
            conn.executemany(
                "DELETE FROM scheduled_notifications WHERE id = ?",
                [(row["id"],) for row in rows]
            )
            return [self._row_to_notification(row) for row in rows]
