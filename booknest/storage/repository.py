"""
Repository Pattern Interface
============================
Abstract base class for book and reading log storage.
Enables swapping storage backends (SQLite, in-memory fakes for tests, etc.)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from booknest.storage.models import (
    Book,
    BookCreate,
    BookFilters,
    BookStatus,
    ReadingLog,
    ReadingLogCreate,
)


class IBookRepository(ABC):
    """
    Abstract repository interface for the reading tracker.

    All methods raise StorageError when the underlying store is
    unavailable.

    Implementations:
        - SQLiteRepository: Local SQLite storage
    """

    # ==================== Book Operations ====================

    @abstractmethod
    def create_book(self, book: BookCreate) -> Book:
        """
        Create a new book record.

        Args:
            book: Book creation data

        Returns:
            Created book with assigned ID
        """
        pass

    @abstractmethod
    def get_book(self, book_id: int) -> Optional[Book]:
        """
        Get a book by ID.

        Args:
            book_id: Book identifier

        Returns:
            Book if found, None otherwise
        """
        pass

    @abstractmethod
    def list_books(self, filters: Optional[BookFilters] = None) -> list[Book]:
        """
        List books with optional filtering.

        Args:
            filters: Query filters (status, favorite, due date, pagination)

        Returns:
            List of books, newest first
        """
        pass

    @abstractmethod
    def update_book(self, book_id: int, **updates) -> Optional[Book]:
        """
        Update descriptive book fields.

        Progress mode is fixed at creation and cannot be updated here.

        Args:
            book_id: Book to update
            **updates: Fields to update

        Returns:
            Updated book if found
        """
        pass

    @abstractmethod
    def delete_book(self, book_id: int) -> bool:
        """
        Delete a book and its reading logs.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    def set_status(self, book_id: int, status: BookStatus) -> bool:
        """Set a book's status. Returns False if the book does not exist."""
        pass

    @abstractmethod
    def set_rating(self, book_id: int, rating: int) -> bool:
        """Set a book's star rating. Returns False if the book does not exist."""
        pass

    @abstractmethod
    def set_favorite(self, book_id: int, favorite: bool) -> bool:
        """Set a book's favorite flag. Returns False if the book does not exist."""
        pass

    @abstractmethod
    def set_due_date(self, book_id: int, due_date: Optional[datetime]) -> bool:
        """Set or clear a book's due date. Returns False if the book does not exist."""
        pass

    # ==================== Reading Log Operations ====================

    @abstractmethod
    def append_log(self, entry: ReadingLogCreate) -> ReadingLog:
        """
        Append a reading log.

        Does not check page ranges; callers validate first.

        Args:
            entry: Log creation data

        Returns:
            Stored log with assigned ID and timestamp
        """
        pass

    @abstractmethod
    def latest_progress_log(self, book_id: int) -> Optional[ReadingLog]:
        """
        Get the most recent log carrying an end page or a percentage.

        Returns:
            Latest progress-bearing log, None if there is none
        """
        pass

    @abstractmethod
    def all_logs(self, book_id: int) -> list[ReadingLog]:
        """
        Get all logs for a book.

        Returns:
            Logs ordered newest first
        """
        pass

    @abstractmethod
    def get_log(self, log_id: int) -> Optional[ReadingLog]:
        """Get a single log by ID."""
        pass

    @abstractmethod
    def delete_log(self, log_id: int) -> bool:
        """
        Delete a single log.

        Callers must recompute derived progress afterwards.

        Returns:
            True if deleted, False if not found
        """
        pass

    # ==================== Settings ====================

    @abstractmethod
    def get_setting(self, key: str) -> Optional[str]:
        """Get a preference value, None if never set."""
        pass

    @abstractmethod
    def set_setting(self, key: str, value: str) -> None:
        """Store a preference value, overwriting any previous one."""
        pass
