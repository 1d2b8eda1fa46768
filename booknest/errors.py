"""
Error Handling Module
=====================
Custom exceptions for the BookNest reading tracker.
Provides consistent error codes and messages for storage, validation
and reminder failures.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional


class ErrorCode(Enum):
    """Error codes for the reading tracker."""
    # Storage errors (E001-E099)
    E001 = "Storage unavailable"
    E002 = "Book not found"
    E003 = "Reading log not found"

    # Validation errors (E100-E199)
    E100 = "Invalid progress range"
    E101 = "Page already logged"
    E102 = "Progress mode mismatch"
    E103 = "Invalid rating"
    E104 = "Invalid reading log"

    # Reminder errors (E200-E299)
    E200 = "Notification scheduling failed"


@dataclass
class BookNestError(Exception):
    """Base exception for BookNest with error codes."""
    code: ErrorCode
    message: str
    details: Optional[str] = None

    def __str__(self) -> str:
        base = f"[{self.code.name}] {self.code.value}: {self.message}"
        if self.details:
            base += f" ({self.details})"
        return base


class StorageError(BookNestError):
    """Read or write against the persistent store failed."""
    def __init__(self, message: str, details: str = None):
        super().__init__(
            code=ErrorCode.E001,
            message=message,
            details=details
        )


class BookNotFoundError(BookNestError):
    """Error when a book id does not exist."""
    def __init__(self, book_id: int):
        self.book_id = book_id
        super().__init__(
            code=ErrorCode.E002,
            message=f"No book with id {book_id}"
        )


class LogNotFoundError(BookNestError):
    """Error when a reading log id does not exist."""
    def __init__(self, log_id: int):
        self.log_id = log_id
        super().__init__(
            code=ErrorCode.E003,
            message=f"No reading log with id {log_id}"
        )


class ValidationError(BookNestError):
    """
    Base for user-correctable submission errors.

    Raised before anything is written, so callers can re-prompt
    without touching stored state.
    """


class InvalidRangeError(ValidationError):
    """Out-of-bounds page or percentage values."""
    def __init__(self, message: str, details: str = None):
        super().__init__(
            code=ErrorCode.E100,
            message=message,
            details=details
        )


class DuplicateRangeError(ValidationError):
    """Submitted range covers a page that was already logged."""
    def __init__(self, page: int):
        self.page = page
        super().__init__(
            code=ErrorCode.E101,
            message=f"Page {page} has already been logged",
            details="Choose a range that starts after the pages you have read"
        )


class ProgressModeError(ValidationError):
    """Log data does not match the book's progress mode or log type."""
    def __init__(self, message: str, details: str = None):
        super().__init__(
            code=ErrorCode.E102,
            message=message,
            details=details
        )


class InvalidRatingError(ValidationError):
    """Rating outside the 1-5 star range."""
    def __init__(self, rating: int):
        self.rating = rating
        super().__init__(
            code=ErrorCode.E103,
            message=f"Rating must be between 1 and 5, got {rating}"
        )


class InvalidLogError(ValidationError):
    """Malformed reading log entry."""
    def __init__(self, message: str, details: str = None):
        super().__init__(
            code=ErrorCode.E104,
            message=message,
            details=details
        )


class NotificationSchedulingError(BookNestError):
    """Host notification service rejected or failed a request."""
    def __init__(self, message: str, details: str = None):
        super().__init__(
            code=ErrorCode.E200,
            message=message,
            details=details
        )
