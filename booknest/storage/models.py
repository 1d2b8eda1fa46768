"""
Storage Models
==============
Dataclasses for repository pattern data transfer objects.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from enum import Enum


class BookStatus(str, Enum):
    """Reading status of a book."""
    TO_READ = "to_read"
    READING = "reading"
    FINISHED = "finished"
    GAVE_UP = "gave_up"


class ProgressMode(str, Enum):
    """How progress is measured for a book. Fixed at creation."""
    BY_PAGES = "pages"
    BY_PERCENTAGE = "percentage"


class LogType(str, Enum):
    """Kinds of reading activity."""
    NOTE = "note"
    SESSION = "session"
    PROGRESS = "progress"


@dataclass
class BookCreate:
    """Data required to create a book record."""
    title: str
    author: str = ""
    category: str = ""
    status: BookStatus = BookStatus.TO_READ
    total_pages: int = 0
    progress_mode: ProgressMode = ProgressMode.BY_PAGES
    rating: int = 0
    favorite: bool = False
    due_date: Optional[datetime] = None
    cover_image: Optional[str] = None
    description: Optional[str] = None


@dataclass
class Book:
    """Book record with full data."""
    id: int
    title: str
    author: str
    category: str
    status: BookStatus
    total_pages: int
    progress_mode: ProgressMode
    rating: int
    favorite: bool
    due_date: Optional[datetime]
    cover_image: Optional[str]
    description: Optional[str]
    created_at: datetime

    @property
    def has_reminder(self) -> bool:
        return self.due_date is not None


@dataclass
class ReadingLogCreate:
    """Data required to append a reading log."""
    book_id: int
    type: LogType
    start_page: Optional[int] = None
    end_page: Optional[int] = None
    percentage: Optional[float] = None
    description: Optional[str] = None
    emoji: Optional[str] = None
    session_duration: Optional[int] = None
    status: Optional[BookStatus] = None


@dataclass
class ReadingLog:
    """Reading log record. Logs are never updated once written."""
    id: int
    book_id: int
    type: LogType
    start_page: Optional[int]
    end_page: Optional[int]
    percentage: Optional[float]
    description: Optional[str]
    emoji: Optional[str]
    session_duration: Optional[int]
    status: Optional[BookStatus]
    timestamp: datetime

    @property
    def carries_progress(self) -> bool:
        """True when the log holds a page end or a percentage snapshot."""
        return self.end_page is not None or self.percentage is not None


@dataclass
class BookFilters:
    """Filters for book queries."""
    search_query: Optional[str] = None
    status: Optional[BookStatus] = None
    category: Optional[str] = None
    favorite: Optional[bool] = None
    has_due_date: Optional[bool] = None
    limit: int = 100
    offset: int = 0
