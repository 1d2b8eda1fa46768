"""
Storage Module
==============
Handles SQLite persistence for books, reading logs and preferences.

Repository Pattern:
    - IBookRepository: Abstract interface for storage
    - SQLiteRepository: Concrete SQLite implementation
"""

from .repository import IBookRepository
from .sqlite_repo import SQLiteRepository
from .models import (
    Book,
    BookCreate,
    BookFilters,
    BookStatus,
    LogType,
    ProgressMode,
    ReadingLog,
    ReadingLogCreate,
)

__all__ = [
    # Repository Pattern
    "IBookRepository",
    "SQLiteRepository",
    # Models
    "Book",
    "BookCreate",
    "BookFilters",
    "BookStatus",
    "LogType",
    "ProgressMode",
    "ReadingLog",
    "ReadingLogCreate",
]
