"""
Application Controller
======================
Central controller for reading tracker business logic.

Every UI action (save session, save note, update progress, rate, set a
due date, toggle notifications) goes through here. After any mutation
the controller recomputes and returns the book's projection, so callers
never have to pass refresh callbacks around.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from booknest.app.config import AppConfig
from booknest.app.events import (
    AppEvent,
    make_log_event,
    make_progress_event,
    make_state_event,
)
from booknest.errors import BookNotFoundError, InvalidRangeError, LogNotFoundError
from booknest.progress.calculator import ProgressSnapshot, compute_progress, compute_read_pages
from booknest.progress.completion import (
    CompletionDecision,
    CompletionState,
    evaluate_completion,
    validate_rating,
)
from booknest.progress.validator import validate_log_entry
from booknest.reminders.notifier import INotificationService, SQLiteNotificationService
from booknest.reminders.scheduler import (
    ReconcileResult,
    ReminderScheduler,
    ReminderState,
    reminder_state,
)
from booknest.storage.models import (
    Book,
    BookCreate,
    BookFilters,
    BookStatus,
    LogType,
    ReadingLog,
    ReadingLogCreate,
)
from booknest.storage.repository import IBookRepository
from booknest.storage.sqlite_repo import SQLiteRepository

logger = logging.getLogger(__name__)

NOTIFICATIONS_ENABLED_KEY = "notifications_enabled"


@dataclass
class BookProjection:
    """
    Everything derived about a book on one load.

    Attributes:
        book: Book as stored after any status change from this load
        progress: Coverage, next unread page and percent complete
        completion: Completion gate decision
        reminder: Reminder state of the book's due date
        logs: All logs, newest first
    """
    book: Book
    progress: ProgressSnapshot
    completion: CompletionDecision
    reminder: ReminderState
    logs: list[ReadingLog]

    @property
    def percent(self) -> int:
        return self.progress.percent

    @property
    def next_unread_page(self) -> int:
        return self.progress.next_unread_page

    @property
    def prompt_rating(self) -> bool:
        return self.completion.prompt_rating


class ReadingController:
    """
    Central controller for the reading tracker.

    Responsibilities:
        - Library management (books, favorites, ratings)
        - Reading log capture with range validation
        - Progress and completion projection
        - Due-date reminders and the notification preference

    Example:
        controller = ReadingController()
        book = controller.add_book(BookCreate(title="Dune", total_pages=412))
        projection = controller.log_progress(book.id, start_page=1, end_page=100)
        print(projection.percent, projection.next_unread_page)
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        repository: Optional[IBookRepository] = None,
        notifier: Optional[INotificationService] = None,
        clock: Callable[[], datetime] = datetime.now,
        on_event: Optional[Callable[[AppEvent], None]] = None
    ):
        """
        Initialize the reading controller.

        Args:
            config: Application configuration
            repository: Book repository (creates SQLiteRepository if None)
            notifier: Host notification service (creates SQLiteNotificationService if None)
            clock: Source of local wall-clock time
            on_event: Optional listener for progress/state events
        """
        self.config = config or AppConfig()
        self._clock = clock
        self.repository = repository or SQLiteRepository(self.config.db_path, clock=clock)
        self.notifier = notifier or SQLiteNotificationService(self.config.db_path, clock=clock)
        self.scheduler = ReminderScheduler(
            self.notifier,
            clock=clock,
            reminder_title=self.config.reminder_title,
            reminder_body_template=self.config.reminder_body_template,
        )
        self._on_event = on_event

    def _emit(self, event: AppEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    # ==================== Library Management ====================

    def add_book(self, book: BookCreate) -> Book:
        """
        Add a book, scheduling its due-date reminder if it has one.

        Args:
            book: Book creation data

        Returns:
            Created book
        """
        created = self.repository.create_book(book)
        logger.info(f"Book {created.title!r} added with id {created.id}")

        if created.due_date is not None:
            self.scheduler.schedule_reminder(
                created.title, created.due_date, self.notifications_enabled()
            )
        return created

    def get_book(self, book_id: int) -> Book:
        """
        Get a book.

        Raises:
            BookNotFoundError: If the book does not exist
        """
        book = self.repository.get_book(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return book

    def list_books(
        self,
        status: Optional[BookStatus] = None,
        favorite: Optional[bool] = None,
        has_due_date: Optional[bool] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> list[Book]:
        """
        List books from the library.

        Args:
            status: Only books with this status (e.g. FINISHED)
            favorite: Only favorites (True) or non-favorites (False)
            has_due_date: Only books with (True) or without (False) a due date
            category: Only books in this category
            search: Title/author text filter
            limit: Maximum number of results
            offset: Pagination offset

        Returns:
            List of books, newest first
        """
        filters = BookFilters(
            search_query=search,
            status=status,
            category=category,
            favorite=favorite,
            has_due_date=has_due_date,
            limit=limit,
            offset=offset,
        )
        return self.repository.list_books(filters)

    def update_book(self, book_id: int, **updates) -> Book:
        """
        Update descriptive fields (title, author, category, pages, cover, description).

        A renamed book with a due date has its reminder rescheduled so the
        pending trigger carries the new title.

        Raises:
            InvalidRangeError: If total_pages drops below a page already logged
        """
        total_pages = updates.get("total_pages")
        if total_pages is not None:
            read_pages = compute_read_pages(self.repository.all_logs(book_id))
            if read_pages and total_pages < max(read_pages):
                raise InvalidRangeError(
                    f"Page count {total_pages} is below pages already logged",
                    details=f"highest logged page is {max(read_pages)}"
                )

        book = self.repository.update_book(book_id, **updates)
        if book is None:
            raise BookNotFoundError(book_id)

        if "title" in updates and book.due_date is not None:
            self.reconcile_reminders()
        return book

    def delete_book(self, book_id: int) -> ReconcileResult:
        """
        Delete a book and its logs, then drop its reminder.

        Returns:
            Result of the reminder reconciliation that follows
        """
        if not self.repository.delete_book(book_id):
            raise BookNotFoundError(book_id)
        logger.info(f"Book {book_id} deleted")
        return self.reconcile_reminders()

    def toggle_favorite(self, book_id: int) -> bool:
        """
        Flip a book's favorite flag.

        Returns:
            New favorite value
        """
        book = self.get_book(book_id)
        favorite = not book.favorite
        self.repository.set_favorite(book_id, favorite)
        return favorite

    # ==================== Reading Logs ====================

    def _append(self, book: Book, entry: ReadingLogCreate) -> ReadingLog:
        """Validate and append a log, moving unread books to READING."""
        validate_log_entry(book, entry, self.repository.all_logs(book.id))

        status = book.status
        advances = entry.type != LogType.NOTE and status == BookStatus.TO_READ
        if advances:
            status = BookStatus.READING
        entry.status = status

        log = self.repository.append_log(entry)
        if advances:
            self.repository.set_status(book.id, status)
            self._emit(make_state_event(book.id, status, "started reading"))
        return log

    def log_progress(
        self,
        book_id: int,
        end_page: Optional[int] = None,
        start_page: Optional[int] = None,
        percentage: Optional[float] = None,
        description: Optional[str] = None,
        emoji: Optional[str] = None
    ) -> BookProjection:
        """
        Record a progress update (a page range or a percentage snapshot).

        Raises:
            ValidationError: If the entry is rejected; nothing is written
        """
        book = self.get_book(book_id)
        self._append(book, ReadingLogCreate(
            book_id=book_id,
            type=LogType.PROGRESS,
            start_page=start_page,
            end_page=end_page,
            percentage=percentage,
            description=description,
            emoji=emoji,
        ))
        return self.load_book(book_id)

    def log_session(
        self,
        book_id: int,
        duration_seconds: int,
        start_page: Optional[int] = None,
        end_page: Optional[int] = None,
        percentage: Optional[float] = None,
        description: Optional[str] = None,
        emoji: Optional[str] = None
    ) -> BookProjection:
        """
        Record a timed reading session, optionally with the pages covered.

        Raises:
            ValidationError: If the entry is rejected; nothing is written
        """
        book = self.get_book(book_id)
        self._append(book, ReadingLogCreate(
            book_id=book_id,
            type=LogType.SESSION,
            start_page=start_page,
            end_page=end_page,
            percentage=percentage,
            description=description,
            emoji=emoji,
            session_duration=duration_seconds,
        ))
        return self.load_book(book_id)

    def add_note(self, book_id: int, text: str, emoji: Optional[str] = None) -> ReadingLog:
        """Attach a free-form note to a book."""
        book = self.get_book(book_id)
        return self._append(book, ReadingLogCreate(
            book_id=book_id,
            type=LogType.NOTE,
            description=text,
            emoji=emoji,
        ))

    def delete_log(self, log_id: int) -> BookProjection:
        """
        Delete a log and recompute the book's projection.

        Deleting a page-bearing log re-opens its pages for logging. When
        status regression is allowed and the deleted log takes a book off
        100%, a Finished book moves back to Reading.
        """
        log = self.repository.get_log(log_id)
        if log is None:
            raise LogNotFoundError(log_id)

        book = self.get_book(log.book_id)
        was_complete = compute_progress(book, self.repository.all_logs(book.id)).is_complete

        if not self.repository.delete_log(log_id):
            raise LogNotFoundError(log_id)
        logger.info(f"Deleted {log.type.value} log {log_id} of book {log.book_id}")
        return self.load_book(log.book_id, regress=was_complete and log.carries_progress)

    def history(self, book_id: int) -> list[ReadingLog]:
        """All logs for a book, newest first."""
        self.get_book(book_id)
        return self.repository.all_logs(book_id)

    # ==================== Progress & Completion ====================

    def load_book(self, book_id: int, regress: bool = False) -> BookProjection:
        """
        Recompute everything derived about a book.

        Applies the completion gate's status change, if any, before
        returning.

        Args:
            book_id: Book to load
            regress: Allow Finished -> Reading (set only after a log deletion,
                and only honored when the config allows status regression)

        Raises:
            BookNotFoundError: If the book does not exist
        """
        book = self.get_book(book_id)
        logs = self.repository.all_logs(book_id)
        progress = compute_progress(book, logs)
        decision = evaluate_completion(
            progress.percent,
            book.status,
            book.rating,
            allow_regression=regress and self.config.allow_status_regression,
        )

        if decision.new_status is not None and decision.new_status != book.status:
            self.repository.set_status(book_id, decision.new_status)
            logger.info(f"Book {book_id} status {book.status.value} -> {decision.new_status.value}")
            book.status = decision.new_status
            self._emit(make_state_event(book_id, decision.new_status))

        if decision.just_finished:
            self._emit(make_state_event(book_id, CompletionState.AWAITING_RATING, "book finished"))

        self._emit(make_progress_event(book_id, progress.percent, progress.next_unread_page))

        return BookProjection(
            book=book,
            progress=progress,
            completion=decision,
            reminder=reminder_state(book.due_date, self.notifications_enabled(), self._clock()),
            logs=logs,
        )

    def submit_rating(self, book_id: int, rating: int) -> BookProjection:
        """
        Store the star rating chosen at the completion prompt.

        Raises:
            InvalidRatingError: If rating is not 1-5
        """
        validate_rating(rating)
        if not self.repository.set_rating(book_id, rating):
            raise BookNotFoundError(book_id)
        logger.info(f"Book {book_id} rated {rating}")
        self._emit(make_state_event(book_id, CompletionState.RATED, f"{rating} stars"))
        return self.load_book(book_id)

    # ==================== Reminders ====================

    def notifications_enabled(self) -> bool:
        """Read the global notification preference."""
        value = self.repository.get_setting(NOTIFICATIONS_ENABLED_KEY)
        if value is None:
            return self.config.notifications_default
        return value == "true"

    def set_notifications_enabled(self, enabled: bool) -> ReconcileResult:
        """
        Store the global preference and apply it to every reminder.

        Turning it off cancels all pending reminders; turning it on
        schedules every future due date.
        """
        self.repository.set_setting(NOTIFICATIONS_ENABLED_KEY, "true" if enabled else "false")
        self._emit(make_log_event(f"notifications {'enabled' if enabled else 'disabled'}"))
        return self.reconcile_reminders()

    def set_due_date(self, book_id: int, due_date: Optional[datetime]) -> ReconcileResult:
        """
        Set, change or clear a book's due date.

        Reminders are reconciled afterwards so the old trigger does not
        fire alongside the new one.
        """
        if not self.repository.set_due_date(book_id, due_date):
            raise BookNotFoundError(book_id)
        return self.reconcile_reminders()

    def reconcile_reminders(self) -> ReconcileResult:
        """Cancel and reschedule reminders for every book."""
        books = self.repository.list_books(BookFilters(has_due_date=True, limit=-1))
        return self.scheduler.reconcile_all(books, self.notifications_enabled())

    def pending_reminders(self):
        """Reminders still waiting in the host queue."""
        return self.notifier.pending()

    def fire_due_reminders(self, now: Optional[datetime] = None):
        """Hand back (and clear) reminders whose trigger time has passed."""
        return self.notifier.pop_due(now or self._clock())
