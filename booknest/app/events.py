"""
Application Event Contracts
===========================
Typed events for progress/log/state updates emitted by the controller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Union


class EventType(str, Enum):
    """High-level event categories."""

    PROGRESS = "progress"
    LOG = "log"
    STATE = "state"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ProgressEvent:
    """Recomputed progress for a book after a mutation."""

    event_type: EventType
    timestamp: str
    book_id: int
    percent: int
    next_unread_page: int


@dataclass(frozen=True)
class LogEvent:
    """Log message emitted from the controller."""

    event_type: EventType
    timestamp: str
    level: str
    message: str


@dataclass(frozen=True)
class StateEvent:
    """Book state transition (status, completion or reminder)."""

    event_type: EventType
    timestamp: str
    book_id: int
    state: str
    message: str = ""


AppEvent = Union[ProgressEvent, LogEvent, StateEvent]


def make_progress_event(book_id: int, percent: int, next_unread_page: int) -> ProgressEvent:
    """Create a normalized progress event."""
    return ProgressEvent(
        event_type=EventType.PROGRESS,
        timestamp=_now_iso(),
        book_id=book_id,
        percent=max(0, percent),
        next_unread_page=next_unread_page,
    )


def make_log_event(message: str, level: str = "info") -> LogEvent:
    """Create a normalized log event."""
    return LogEvent(
        event_type=EventType.LOG,
        timestamp=_now_iso(),
        level=level.lower(),
        message=message,
    )


def make_state_event(book_id: int, state: Union[str, Enum], message: str = "") -> StateEvent:
    """Create a normalized state event."""
    return StateEvent(
        event_type=EventType.STATE,
        timestamp=_now_iso(),
        book_id=book_id,
        state=state.value if isinstance(state, Enum) else str(state),
        message=message,
    )
