"""
Progress Calculator
===================
Derives read coverage, the next unread page and percent complete from a
book's reading log history. Everything here is a pure function of the
logs and the book; nothing is persisted.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from booknest.storage.models import Book, ProgressMode, ReadingLog


@dataclass(frozen=True)
class ProgressSnapshot:
    """Derived progress state for one book."""
    read_pages: frozenset[int]
    next_unread_page: int
    percent: int
    latest_log: Optional[ReadingLog]

    @property
    def is_complete(self) -> bool:
        return self.percent == 100

    @property
    def pages_read(self) -> int:
        return len(self.read_pages)


def round_half_up(value) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def log_page_range(log: ReadingLog) -> Optional[range]:
    """Pages covered by a log, or None if it carries no end page."""
    if log.end_page is None:
        return None
    return range(log.start_page or 1, log.end_page + 1)


def compute_read_pages(logs: Iterable[ReadingLog]) -> set[int]:
    """
    Collect every page covered by the given logs.

    A log with an end page covers [start_page or 1, end_page]. Notes
    and percentage-only logs contribute nothing.
    """
    read_pages: set[int] = set()
    for log in logs:
        pages = log_page_range(log)
        if pages is not None:
            read_pages.update(pages)
    return read_pages


def next_unread_page(read_pages: set[int], total_pages: int) -> int:
    """
    First page in 1..total_pages that is not in read_pages.

    Returns total_pages + 1 when every page has been read.
    """
    for page in range(1, total_pages + 1):
        if page not in read_pages:
            return page
    return total_pages + 1


def latest_progress_log(logs: Iterable[ReadingLog]) -> Optional[ReadingLog]:
    """Most recent log carrying an end page or a percentage."""
    candidates = [log for log in logs if log.carries_progress]
    if not candidates:
        return None
    return max(candidates, key=lambda log: (log.timestamp, log.id))


def percent_complete(book: Book, latest_log: Optional[ReadingLog]) -> int:
    """
    Whole-number percent complete from the latest progress snapshot.

    By pages, an unknown page count (0) divides by 1, so the result is
    not capped at 100 for such books.
    """
    if latest_log is None:
        return 0

    if book.progress_mode == ProgressMode.BY_PERCENTAGE:
        if latest_log.percentage is None:
            return 0
        return round_half_up(latest_log.percentage)

    if latest_log.end_page is None:
        return 0
    divisor = book.total_pages or 1
    ratio = Decimal(latest_log.end_page) / Decimal(divisor) * 100
    return round_half_up(ratio)


def compute_progress(book: Book, logs: list[ReadingLog]) -> ProgressSnapshot:
    """
    Recompute the full progress snapshot for a book.

    Args:
        book: The book the logs belong to
        logs: All of the book's logs, in any order

    Returns:
        ProgressSnapshot with coverage, next page and percent
    """
    read_pages = compute_read_pages(logs)
    latest = latest_progress_log(logs)
    return ProgressSnapshot(
        read_pages=frozenset(read_pages),
        next_unread_page=next_unread_page(read_pages, book.total_pages),
        percent=percent_complete(book, latest),
        latest_log=latest,
    )
