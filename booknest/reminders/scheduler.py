"""
Reminder Scheduler
==================
Turns book due dates into host notifications.

The global "notifications enabled" preference is passed in explicitly on
every call; the scheduler never reads it from storage itself. Scheduling
is best effort: host failures are logged and swallowed.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Callable, Iterable, Optional

from booknest.errors import NotificationSchedulingError
from booknest.reminders.notifier import (
    DEFAULT_REMINDER_BODY,
    DEFAULT_REMINDER_TITLE,
    INotificationService,
    ReminderPayload,
)
from booknest.storage.models import Book

logger = logging.getLogger(__name__)


class ReminderState(str, Enum):
    """Observable reminder state of a single book."""
    NO_REMINDER = "no_reminder"
    SCHEDULED = "scheduled"
    FIRED = "fired"
    CANCELLED = "cancelled"


@dataclass
class ReconcileResult:
    """Summary of a reconcile_all pass."""
    enabled: bool
    cancelled: int = 0
    scheduled: dict[int, int] = field(default_factory=dict)
    past_due: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


def combine_due_date(day: date, time_of_day: time) -> datetime:
    """
    Combine a calendar date and a time of day into one local instant.

    Both parts are taken as device-local wall time; any tzinfo on the
    time is dropped rather than converted.
    """
    return datetime.combine(day, time_of_day.replace(tzinfo=None))


def to_local_naive(instant: datetime) -> datetime:
    """Express an instant as naive local wall time."""
    if instant.tzinfo is None:
        return instant
    return instant.astimezone().replace(tzinfo=None)


def reminder_state(due_date: Optional[datetime], enabled: bool, now: datetime) -> ReminderState:
    """
    Derive where a book's reminder stands.

    Computed from the due date, the preference and the clock alone. A
    future due date reads SCHEDULED even if the host rejected the trigger;
    host failures show up only in ReconcileResult.failed.
    """
    if due_date is None:
        return ReminderState.NO_REMINDER
    if not enabled:
        return ReminderState.CANCELLED
    if to_local_naive(due_date) > now:
        return ReminderState.SCHEDULED
    return ReminderState.FIRED


class ReminderScheduler:
    """
    Schedules, cancels and reconciles due-date reminders.

    Example:
        scheduler = ReminderScheduler(SQLiteNotificationService(db_path))
        scheduler.schedule_reminder("Dune", due, enabled=True)
        scheduler.reconcile_all(books, enabled=True)
    """

    def __init__(
        self,
        notifier: INotificationService,
        clock: Callable[[], datetime] = datetime.now,
        reminder_title: str = DEFAULT_REMINDER_TITLE,
        reminder_body_template: str = DEFAULT_REMINDER_BODY
    ):
        """
        Initialize the scheduler.

        Args:
            notifier: Host notification service
            clock: Source of local wall-clock time
            reminder_title: Fixed notification title
            reminder_body_template: Body text, formatted with {title}
        """
        self.notifier = notifier
        self._clock = clock
        self.reminder_title = reminder_title
        self.reminder_body_template = reminder_body_template

    def build_payload(self, book_title: str) -> ReminderPayload:
        return ReminderPayload.for_book(
            book_title,
            title=self.reminder_title,
            body_template=self.reminder_body_template,
        )

    def schedule_reminder(self, title: str, due: datetime, enabled: bool) -> Optional[int]:
        """
        Schedule a reminder for a book title at its due instant.

        Args:
            title: Book title shown in the reminder
            due: Due instant, local time
            enabled: Global notification preference

        Returns:
            Host notification id, or None if nothing was scheduled
        """
        if not enabled:
            logger.info(f"Notifications are disabled; skipping scheduling for {title!r}")
            return None

        due = to_local_naive(due)
        if due <= self._clock():
            logger.warning(f"Due date for {title!r} is in the past ({due}); not scheduled")
            return None

        try:
            notification_id = self.notifier.schedule(self.build_payload(title), due)
        except NotificationSchedulingError:
            logger.exception(f"Error scheduling reminder for {title!r}")
            return None
        except Exception as e:
            logger.exception(f"Notification host raised while scheduling {title!r}: {e}")
            return None

        logger.info(f"Reminder scheduled for {title!r} at {due}")
        return notification_id

    def cancel_all_reminders(self) -> int:
        """
        Cancel every pending reminder.

        Returns:
            Number of reminders cancelled (0 if the host failed)
        """
        try:
            return self.notifier.cancel_all()
        except NotificationSchedulingError:
            logger.exception("Error cancelling scheduled reminders")
        except Exception as e:
            logger.exception(f"Notification host raised while cancelling reminders: {e}")
        return 0

    def reconcile_all(self, books: Iterable[Book], enabled: bool) -> ReconcileResult:
        """
        Bring host reminders in line with the books' due dates.

        Everything pending is cancelled first, then every future due date
        is scheduled again, so repeated runs and edited due dates never
        leave stale triggers behind.

        Args:
            books: Every book in the library
            enabled: Global notification preference

        Returns:
            ReconcileResult
        """
        result = ReconcileResult(enabled=enabled)
        result.cancelled = self.cancel_all_reminders()

        if not enabled:
            logger.info("Notifications are disabled; all scheduled reminders cancelled")
            return result

        now = self._clock()
        for book in books:
            if book.due_date is None:
                continue
            if to_local_naive(book.due_date) <= now:
                result.past_due.append(book.id)
                continue

            notification_id = self.schedule_reminder(book.title, book.due_date, enabled)
            if notification_id is None:
                result.failed.append(book.id)
            else:
                result.scheduled[book.id] = notification_id

        logger.info(
            f"Reconciled reminders: {len(result.scheduled)} scheduled, "
            f"{len(result.past_due)} past due, {len(result.failed)} failed"
        )
        return result
