"""
BookNest CLI
============
Terminal command surface for books, reading logs and reminders.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime, time
from typing import Callable, Optional, TextIO

from booknest.app.config import AppConfig
from booknest.app.controller import BookProjection, ReadingController
from booknest.errors import BookNestError, StorageError, ValidationError
from booknest.reminders.scheduler import combine_due_date
from booknest.storage.models import BookCreate, BookStatus, ProgressMode

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def _parse_time(value: str) -> time:
    try:
        return time.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid time {value!r}, expected HH:MM")


def build_parser() -> argparse.ArgumentParser:
    """Create the root CLI parser."""
    parser = argparse.ArgumentParser(prog="booknest", description="BookNest reading tracker")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # books
    books_parser = subparsers.add_parser("books", help="Library operations")
    books_subparsers = books_parser.add_subparsers(dest="books_command", required=True)

    add_parser = books_subparsers.add_parser("add", help="Add a book")
    add_parser.add_argument("title", help="Book title")
    add_parser.add_argument("--author", default="", help="Author name")
    add_parser.add_argument("--category", default="", help="Category")
    add_parser.add_argument("--pages", type=int, default=0, help="Total pages (0 if unknown)")
    add_parser.add_argument(
        "--mode",
        choices=[m.value for m in ProgressMode],
        default=ProgressMode.BY_PAGES.value,
        help="Track progress by pages or percentage (default: pages)",
    )
    add_parser.add_argument(
        "--status",
        choices=[s.value for s in BookStatus],
        default=BookStatus.TO_READ.value,
        help="Initial status (default: to_read)",
    )
    add_parser.add_argument("--due", type=_parse_date, help="Due date (YYYY-MM-DD)")
    add_parser.add_argument("--at", type=_parse_time, default=time(9, 0), help="Due time (default: 09:00)")
    add_parser.set_defaults(handler=handle_books_add)

    list_parser = books_subparsers.add_parser("list", help="List books")
    list_parser.add_argument("--status", choices=[s.value for s in BookStatus], help="Filter by status")
    list_parser.add_argument("--favorites", action="store_true", help="Only favorites")
    list_parser.add_argument("--due", action="store_true", help="Only books with a due date")
    list_parser.add_argument("--search", help="Filter by title/author text")
    list_parser.add_argument("--limit", type=int, default=50, help="Max number of books")
    list_parser.add_argument("--offset", type=int, default=0, help="Pagination offset")
    list_parser.set_defaults(handler=handle_books_list)

    show_parser = books_subparsers.add_parser("show", help="Show progress for a book")
    show_parser.add_argument("book_id", type=int)
    show_parser.set_defaults(handler=handle_books_show)

    delete_parser = books_subparsers.add_parser("delete", help="Delete a book and its logs")
    delete_parser.add_argument("book_id", type=int)
    delete_parser.set_defaults(handler=handle_books_delete)

    favorite_parser = books_subparsers.add_parser("favorite", help="Toggle favorite")
    favorite_parser.add_argument("book_id", type=int)
    favorite_parser.set_defaults(handler=handle_books_favorite)

    # log
    log_parser = subparsers.add_parser("log", help="Record reading activity")
    log_subparsers = log_parser.add_subparsers(dest="log_command", required=True)

    progress_parser = log_subparsers.add_parser("progress", help="Record pages read or percent reached")
    progress_parser.add_argument("book_id", type=int)
    progress_parser.add_argument("--from", dest="start_page", type=int, help="First page read")
    progress_parser.add_argument("--to", dest="end_page", type=int, help="Last page read")
    progress_parser.add_argument("--percent", type=float, help="Percent reached (percentage books)")
    progress_parser.add_argument("--emoji", help="Mood tag")
    progress_parser.set_defaults(handler=handle_log_progress)

    session_parser = log_subparsers.add_parser("session", help="Record a timed reading session")
    session_parser.add_argument("book_id", type=int)
    session_parser.add_argument("--minutes", type=int, required=True, help="Session length in minutes")
    session_parser.add_argument("--from", dest="start_page", type=int, help="First page read")
    session_parser.add_argument("--to", dest="end_page", type=int, help="Last page read")
    session_parser.add_argument("--percent", type=float, help="Percent reached (percentage books)")
    session_parser.add_argument("--emoji", help="Mood tag")
    session_parser.set_defaults(handler=handle_log_session)

    note_parser = log_subparsers.add_parser("note", help="Add a note")
    note_parser.add_argument("book_id", type=int)
    note_parser.add_argument("text", help="Note text")
    note_parser.add_argument("--emoji", help="Mood tag")
    note_parser.set_defaults(handler=handle_log_note)

    # logs
    logs_parser = subparsers.add_parser("logs", help="Reading history")
    logs_subparsers = logs_parser.add_subparsers(dest="logs_command", required=True)

    logs_list_parser = logs_subparsers.add_parser("list", help="List a book's logs, newest first")
    logs_list_parser.add_argument("book_id", type=int)
    logs_list_parser.set_defaults(handler=handle_logs_list)

    logs_delete_parser = logs_subparsers.add_parser("delete", help="Delete a log")
    logs_delete_parser.add_argument("log_id", type=int)
    logs_delete_parser.set_defaults(handler=handle_logs_delete)

    # rate
    rate_parser = subparsers.add_parser("rate", help="Rate a book 1-5 stars")
    rate_parser.add_argument("book_id", type=int)
    rate_parser.add_argument("stars", type=int)
    rate_parser.set_defaults(handler=handle_rate)

    # due
    due_parser = subparsers.add_parser("due", help="Manage due dates")
    due_subparsers = due_parser.add_subparsers(dest="due_command", required=True)

    due_set_parser = due_subparsers.add_parser("set", help="Set or change a due date")
    due_set_parser.add_argument("book_id", type=int)
    due_set_parser.add_argument("date", type=_parse_date, help="Due date (YYYY-MM-DD)")
    due_set_parser.add_argument("--at", type=_parse_time, default=time(9, 0), help="Due time (default: 09:00)")
    due_set_parser.set_defaults(handler=handle_due_set)

    due_clear_parser = due_subparsers.add_parser("clear", help="Remove a due date")
    due_clear_parser.add_argument("book_id", type=int)
    due_clear_parser.set_defaults(handler=handle_due_clear)

    # notifications
    notifications_parser = subparsers.add_parser("notifications", help="Global reminder switch")
    notifications_parser.add_argument("action", choices=["on", "off", "status"])
    notifications_parser.set_defaults(handler=handle_notifications)

    # reminders
    reminders_parser = subparsers.add_parser("reminders", help="Scheduled reminders")
    reminders_parser.add_argument("action", choices=["reconcile", "pending", "fire"])
    reminders_parser.set_defaults(handler=handle_reminders)

    return parser


def _print(msg: str, out: TextIO) -> None:
    out.write(msg + "\n")
    out.flush()


def _print_projection(projection: BookProjection, out: TextIO) -> None:
    book = projection.book
    _print(f"[{book.id}] {book.title} by {book.author or 'unknown'} ({book.status.value})", out)
    _print(f"progress: {projection.percent}%", out)
    if book.progress_mode == ProgressMode.BY_PAGES:
        if projection.next_unread_page > book.total_pages:
            _print("next page: none, all pages read", out)
        else:
            _print(f"next page: {projection.next_unread_page} of {book.total_pages}", out)
    if book.due_date:
        _print(f"due: {book.due_date:%Y-%m-%d %H:%M} ({projection.reminder.value})", out)
    if book.rating:
        _print(f"rating: {'*' * book.rating}", out)
    if projection.prompt_rating:
        _print(f"finished! rate it with: booknest rate {book.id} <1-5>", out)


def handle_books_add(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Add a book to the library."""
    due = combine_due_date(args.due, args.at) if args.due else None
    book = controller.add_book(BookCreate(
        title=args.title,
        author=args.author,
        category=args.category,
        status=BookStatus(args.status),
        total_pages=args.pages,
        progress_mode=ProgressMode(args.mode),
        due_date=due,
    ))
    _print(f"added book {book.id}: {book.title}", out)
    return 0


def handle_books_list(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """List library books."""
    books = controller.list_books(
        status=BookStatus(args.status) if args.status else None,
        favorite=True if args.favorites else None,
        has_due_date=True if args.due else None,
        search=args.search,
        limit=args.limit,
        offset=args.offset,
    )

    if not books:
        _print("no books found", out)
        return 0

    for book in books:
        star = " *" if book.favorite else ""
        due = f" due {book.due_date:%Y-%m-%d %H:%M}" if book.due_date else ""
        _print(f"- [{book.id}] {book.title} by {book.author or 'unknown'} ({book.status.value}){due}{star}", out)
    return 0


def handle_books_show(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Show a book's derived progress."""
    _print_projection(controller.load_book(args.book_id), out)
    return 0


def handle_books_delete(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Delete a book."""
    controller.delete_book(args.book_id)
    _print(f"deleted book {args.book_id}", out)
    return 0


def handle_books_favorite(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Toggle a book's favorite flag."""
    favorite = controller.toggle_favorite(args.book_id)
    _print(f"book {args.book_id} {'added to' if favorite else 'removed from'} favorites", out)
    return 0


def handle_log_progress(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Record a progress update."""
    projection = controller.log_progress(
        args.book_id,
        start_page=args.start_page,
        end_page=args.end_page,
        percentage=args.percent,
        emoji=args.emoji,
    )
    _print_projection(projection, out)
    return 0


def handle_log_session(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Record a reading session."""
    projection = controller.log_session(
        args.book_id,
        duration_seconds=args.minutes * 60,
        start_page=args.start_page,
        end_page=args.end_page,
        percentage=args.percent,
        emoji=args.emoji,
    )
    _print_projection(projection, out)
    return 0


def handle_log_note(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Add a note."""
    log = controller.add_note(args.book_id, args.text, emoji=args.emoji)
    _print(f"note {log.id} saved", out)
    return 0


def handle_logs_list(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """List a book's reading history."""
    logs = controller.history(args.book_id)
    if not logs:
        _print("no reading logs", out)
        return 0

    for log in logs:
        if log.end_page is not None:
            detail = f"pages {log.start_page or 1}-{log.end_page}"
        elif log.percentage is not None:
            detail = f"{log.percentage:g}%"
        else:
            detail = log.description or ""
        if log.session_duration is not None:
            detail += f" ({log.session_duration // 60} min)"
        emoji = f" {log.emoji}" if log.emoji else ""
        _print(f"- #{log.id} {log.timestamp:%Y-%m-%d %H:%M} {log.type.value}: {detail}{emoji}", out)
    return 0


def handle_logs_delete(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Delete a log and show the recomputed progress."""
    projection = controller.delete_log(args.log_id)
    _print(f"deleted log {args.log_id}", out)
    _print_projection(projection, out)
    return 0


def handle_rate(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Rate a book."""
    projection = controller.submit_rating(args.book_id, args.stars)
    _print(f"rated {projection.book.title}: {'*' * projection.book.rating}", out)
    return 0


def _print_reconcile(result, out: TextIO) -> None:
    _print(
        f"reminders: cancelled={result.cancelled} scheduled={len(result.scheduled)} "
        f"past_due={len(result.past_due)} failed={len(result.failed)}",
        out,
    )


def handle_due_set(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Set a due date."""
    due = combine_due_date(args.date, args.at)
    result = controller.set_due_date(args.book_id, due)
    _print(f"book {args.book_id} due {due:%Y-%m-%d %H:%M}", out)
    _print_reconcile(result, out)
    return 0


def handle_due_clear(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Clear a due date."""
    result = controller.set_due_date(args.book_id, None)
    _print(f"book {args.book_id} has no due date", out)
    _print_reconcile(result, out)
    return 0


def handle_notifications(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Show or change the global notification preference."""
    if args.action == "status":
        _print(f"notifications: {'on' if controller.notifications_enabled() else 'off'}", out)
        return 0

    result = controller.set_notifications_enabled(args.action == "on")
    _print(f"notifications: {args.action}", out)
    _print_reconcile(result, out)
    return 0


def handle_reminders(args: argparse.Namespace, controller: ReadingController, out: TextIO) -> int:
    """Reconcile, list or deliver reminders."""
    if args.action == "reconcile":
        _print_reconcile(controller.reconcile_reminders(), out)
        return 0

    if args.action == "pending":
        notifications = controller.pending_reminders()
    else:
        notifications = controller.fire_due_reminders()

    if not notifications:
        _print("no reminders", out)
        return 0

    for notification in notifications:
        _print(
            f"- {notification.trigger_at:%Y-%m-%d %H:%M} {notification.payload.title}: "
            f"{notification.payload.body}",
            out,
        )
    return 0


def default_controller() -> ReadingController:
    """Build a controller from BOOKNEST_* environment settings."""
    config = AppConfig.from_env()
    logging.getLogger("booknest").setLevel(config.log_level)
    return ReadingController(config)


def main(
    argv: Optional[list[str]] = None,
    controller_factory: Callable[[], ReadingController] = default_controller,
    out: TextIO = sys.stdout,
) -> int:
    """
    CLI entrypoint.

    Args:
        argv: Optional argv override for testing.
        controller_factory: Dependency-injection hook for tests.
        out: Output stream.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help(file=out)
        return 2

    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)

    try:
        controller = controller_factory()
        if args.verbose:
            logging.getLogger("booknest").setLevel(logging.INFO)
        return int(handler(args, controller, out))
    except ValidationError as exc:
        _print(f"error: {exc.message}", out)
        return 1
    except StorageError as exc:
        _print(f"storage error: {exc}", out)
        return 1
    except BookNestError as exc:
        _print(f"error: {exc.message}", out)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
