"""
Reminders Module
================
Due-date reminder scheduling against a host notification service.
"""

from .notifier import (
    INotificationService,
    ReminderPayload,
    ScheduledNotification,
    SQLiteNotificationService,
)
from .scheduler import (
    ReconcileResult,
    ReminderScheduler,
    ReminderState,
    combine_due_date,
    reminder_state,
    to_local_naive,
)

__all__ = [
    "INotificationService",
    "ReminderPayload",
    "ScheduledNotification",
    "SQLiteNotificationService",
    "ReconcileResult",
    "ReminderScheduler",
    "ReminderState",
    "combine_due_date",
    "reminder_state",
    "to_local_naive",
]
