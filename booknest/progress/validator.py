"""
Range Validator
===============
Rejects reading-progress submissions that would log a page twice or
fall outside the book's bounds. Validation never touches storage; run
it before appending a log.
"""

import math
from typing import Iterable, Optional

from booknest.errors import (
    DuplicateRangeError,
    InvalidLogError,
    InvalidRangeError,
    ProgressModeError,
)
from booknest.progress.calculator import compute_read_pages
from booknest.storage.models import (
    Book,
    LogType,
    ProgressMode,
    ReadingLog,
    ReadingLogCreate,
)


def validate_page_range(
    from_page: int,
    to_page: int,
    total_pages: int,
    existing_logs: Iterable[ReadingLog]
) -> None:
    """
    Check a proposed [from_page, to_page] range against the book.

    Args:
        from_page: First page read (inclusive)
        to_page: Last page read (inclusive)
        total_pages: Page count of the book
        existing_logs: Logs already stored for the book

    Raises:
        InvalidRangeError: If the range is out of bounds
        DuplicateRangeError: With the lowest already-logged page in range
    """
    if not 0 <= to_page <= total_pages:
        raise InvalidRangeError(
            f"End page {to_page} is outside the book",
            details=f"Expected 0-{total_pages}"
        )
    if not 1 <= from_page <= to_page:
        raise InvalidRangeError(
            f"Start page {from_page} is invalid",
            details=f"Expected 1-{to_page}"
        )

    read_pages = compute_read_pages(existing_logs)
    for page in range(from_page, to_page + 1):
        if page in read_pages:
            raise DuplicateRangeError(page)


def validate_percentage(percentage: float) -> None:
    """
    Check a percentage snapshot is within 0-100.

    Raises:
        InvalidRangeError: If out of bounds or not a number
    """
    if percentage is None or math.isnan(percentage) or not 0 <= percentage <= 100:
        raise InvalidRangeError(
            f"Percentage {percentage} is out of range",
            details="Expected 0-100"
        )


def _has_page_data(entry: ReadingLogCreate) -> bool:
    return entry.start_page is not None or entry.end_page is not None


def validate_log_entry(
    book: Book,
    entry: ReadingLogCreate,
    existing_logs: Optional[Iterable[ReadingLog]] = None
) -> None:
    """
    Validate a log entry for a book before it is appended.

    Notes must not carry progress data; progress-bearing entries must
    match the book's progress mode and pass range checks.

    Raises:
        InvalidLogError: Malformed entry (negative duration, empty progress)
        ProgressModeError: Data that does not fit the mode or log type
        InvalidRangeError: Out-of-bounds pages or percentage
        DuplicateRangeError: Pages already logged
    """
    if entry.session_duration is not None:
        if entry.type != LogType.SESSION:
            raise InvalidLogError("Only sessions can record a duration")
        if entry.session_duration < 0:
            raise InvalidLogError(
                "Session duration cannot be negative",
                details=f"Got {entry.session_duration} seconds"
            )

    if entry.type == LogType.NOTE:
        if _has_page_data(entry) or entry.percentage is not None:
            raise ProgressModeError("Notes cannot carry page or percentage data")
        return

    if entry.start_page is not None and entry.end_page is None:
        raise InvalidLogError("A start page needs an end page")

    if book.progress_mode == ProgressMode.BY_PAGES:
        if entry.percentage is not None:
            raise ProgressModeError(
                "This book tracks progress by pages",
                details="Submit a page range instead of a percentage"
            )
        if entry.end_page is None:
            if entry.type == LogType.PROGRESS:
                raise InvalidLogError("A progress update needs an end page")
            return
        from_page = entry.start_page if entry.start_page is not None else 1
        validate_page_range(from_page, entry.end_page, book.total_pages, existing_logs or [])
        return

    if _has_page_data(entry):
        raise ProgressModeError(
            "This book tracks progress by percentage",
            details="Submit a percentage instead of a page range"
        )
    if entry.percentage is None:
        if entry.type == LogType.PROGRESS:
            raise InvalidLogError("A progress update needs a percentage")
        return
    validate_percentage(entry.percentage)
