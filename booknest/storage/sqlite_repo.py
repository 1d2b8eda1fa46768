"""
SQLite Repository Implementation
================================
Concrete implementation of IBookRepository using SQLite.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from booknest.errors import StorageError
from booknest.storage.repository import IBookRepository
from booknest.storage.models import (
    Book,
    BookCreate,
    BookFilters,
    BookStatus,
    LogType,
    ProgressMode,
    ReadingLog,
    ReadingLogCreate,
)

logger = logging.getLogger(__name__)


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat(timespec="microseconds")


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


class SQLiteRepository(IBookRepository):
    """
    SQLite implementation of the book repository interface.

    One connection per operation; a failed statement rolls the whole
    operation back and surfaces as StorageError.
    """

    def __init__(
        self,
        db_path: Path | str = "data/booknest.db",
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize SQLite repository.

        Args:
            db_path: Path to SQLite database file
            clock: Source of local wall-clock time for log timestamps
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._init_schema()

    @contextmanager
    def _connection(self):
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            logger.error(f"Could not open database {self.db_path}: {e}")
            raise StorageError("Could not open database", details=str(e)) from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database operation failed: {e}")
            raise StorageError("Database operation failed", details=str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self._connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS books (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    author TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL CHECK(status IN ('to_read', 'reading', 'finished', 'gave_up')),
                    total_pages INTEGER NOT NULL DEFAULT 0 CHECK(total_pages >= 0),
                    progress_mode TEXT NOT NULL CHECK(progress_mode IN ('pages', 'percentage')),
                    rating INTEGER NOT NULL DEFAULT 0 CHECK(rating BETWEEN 0 AND 5),
                    favorite INTEGER NOT NULL DEFAULT 0,
                    due_date TEXT,
                    cover_image TEXT,
                    description TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS reading_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    book_id INTEGER NOT NULL,
                    type TEXT NOT NULL CHECK(type IN ('note', 'session', 'progress')),
                    start_page INTEGER,
                    end_page INTEGER,
                    percentage REAL,
                    description TEXT,
                    emoji TEXT,
                    session_duration INTEGER,
                    status TEXT,
                    timestamp TEXT NOT NULL,
                    FOREIGN KEY (book_id) REFERENCES books(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_logs_book_time ON reading_logs(book_id, timestamp DESC);
                CREATE INDEX IF NOT EXISTS idx_books_status ON books(status);
            """)

    def _row_to_book(self, row: sqlite3.Row) -> Book:
        """Convert database row to Book dataclass."""
        return Book(
            id=row["id"],
            title=row["title"],
            author=row["author"],
            category=row["category"],
            status=BookStatus(row["status"]),
            total_pages=row["total_pages"],
            progress_mode=ProgressMode(row["progress_mode"]),
            rating=row["rating"],
            favorite=bool(row["favorite"]),
            due_date=_from_iso(row["due_date"]),
            cover_image=row["cover_image"],
            description=row["description"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_log(self, row: sqlite3.Row) -> ReadingLog:
        """Convert database row to ReadingLog dataclass."""
        status = None
        if row["status"]:
            status = BookStatus(row["status"])

        return ReadingLog(
            id=row["id"],
            book_id=row["book_id"],
            type=LogType(row["type"]),
            start_page=row["start_page"],
            end_page=row["end_page"],
            percentage=row["percentage"],
            description=row["description"],
            emoji=row["emoji"],
            session_duration=row["session_duration"],
            status=status,
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    # ==================== Book Operations ====================

    def create_book(self, book: BookCreate) -> Book:
        """Create a new book record."""
        with self._connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO books (title, author, category, status, total_pages, progress_mode,
                                   rating, favorite, due_date, cover_image, description, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (book.title, book.author, book.category, book.status.value,
                 book.total_pages, book.progress_mode.value, book.rating,
                 int(book.favorite), _to_iso(book.due_date), book.cover_image,
                 book.description, _to_iso(self._clock()))
            )
            book_id = cursor.lastrowid

            row = conn.execute(
                "SELECT * FROM books WHERE id = ?",
                (book_id,)
            ).fetchone()

            return self._row_to_book(row)

    def get_book(self, book_id: int) -> Optional[Book]:
        """Get a book by ID."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM books WHERE id = ?",
                (book_id,)
            ).fetchone()

            if row:
                return self._row_to_book(row)
            return None

    def list_books(self, filters: Optional[BookFilters] = None) -> list[Book]:
        """List books with optional filtering."""
        filters = filters or BookFilters()

        query = "SELECT * FROM books WHERE 1=1"
        params = []

        if filters.search_query:
            query += " AND (title LIKE ? OR author LIKE ?)"
            search_pattern = f"%{filters.search_query}%"
            params.extend([search_pattern, search_pattern])

        if filters.status:
            query += " AND status = ?"
            params.append(filters.status.value)

        if filters.category:
            query += " AND category = ?"
            params.append(filters.category)

        if filters.favorite is not None:
            query += " AND favorite = ?"
            params.append(int(filters.favorite))

        if filters.has_due_date is True:
            query += " AND due_date IS NOT NULL"
        elif filters.has_due_date is False:
            query += " AND due_date IS NULL"

        query += " ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([filters.limit, filters.offset])

        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_book(row) for row in rows]

    def update_book(self, book_id: int, **updates) -> Optional[Book]:
        """Update descriptive book fields."""
        allowed_fields = {"title", "author", "category", "total_pages", "cover_image", "description"}
        filtered_updates = {k: v for k, v in updates.items() if k in allowed_fields}

        if not filtered_updates:
            return self.get_book(book_id)

        set_clause = ", ".join(f"{k} = ?" for k in filtered_updates.keys())

        with self._connection() as conn:
            cursor = conn.execute(
                f"UPDATE books SET {set_clause} WHERE id = ?",
                (*filtered_updates.values(), book_id)
            )

            if cursor.rowcount == 0:
                return None

        return self.get_book(book_id)

    def delete_book(self, book_id: int) -> bool:
        """Delete a book and its reading logs."""
        with self._connection() as conn:
            conn.execute(
                "DELETE FROM reading_logs WHERE book_id = ?",
                (book_id,)
            )
            cursor = conn.execute(
                "DELETE FROM books WHERE id = ?",
                (book_id,)
            )
            return cursor.rowcount > 0

    def _set_column(self, book_id: int, column: str, value) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                f"UPDATE books SET {column} = ? WHERE id = ?",
                (value, book_id)
            )
            return cursor.rowcount > 0

    def set_status(self, book_id: int, status: BookStatus) -> bool:
        """Set a book's status."""
        return self._set_column(book_id, "status", status.value)

    def set_rating(self, book_id: int, rating: int) -> bool:
        """Set a book's star rating."""
        return self._set_column(book_id, "rating", rating)

    def set_favorite(self, book_id: int, favorite: bool) -> bool:
        """Set a book's favorite flag."""
        return self._set_column(book_id, "favorite", int(favorite))

    def set_due_date(self, book_id: int, due_date: Optional[datetime]) -> bool:
        """Set or clear a book's due date."""
        return self._set_column(book_id, "due_date", _to_iso(due_date))

    # ==================== Reading Log Operations ====================

    def append_log(self, entry: ReadingLogCreate) -> ReadingLog:
        """Append a reading log."""
        timestamp = self._clock()

        with self._connection() as conn:
            # Never let a wall-clock step backwards reorder history.
            last = conn.execute("SELECT MAX(timestamp) FROM reading_logs").fetchone()[0]
            if last and _to_iso(timestamp) < last:
                timestamp = datetime.fromisoformat(last)

            cursor = conn.execute(
                """
                INSERT INTO reading_logs (book_id, type, start_page, end_page, percentage,
                                          description, emoji, session_duration, status, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (entry.book_id, entry.type.value, entry.start_page, entry.end_page,
                 entry.percentage, entry.description, entry.emoji,
                 entry.session_duration,
                 entry.status.value if entry.status else None,
                 _to_iso(timestamp))
            )
            log_id = cursor.lastrowid

            row = conn.execute(
                "SELECT * FROM reading_logs WHERE id = ?",
                (log_id,)
            ).fetchone()

            return self._row_to_log(row)

    def latest_progress_log(self, book_id: int) -> Optional[ReadingLog]:
        """Get the most recent log carrying an end page or a percentage."""
        with self._connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM reading_logs
                WHERE book_id = ? AND (end_page IS NOT NULL OR percentage IS NOT NULL)
                ORDER BY timestamp DESC, id DESC
                LIMIT 1
                """,
                (book_id,)
            ).fetchone()

            if row:
                return self._row_to_log(row)
            return None

    def all_logs(self, book_id: int) -> list[ReadingLog]:
        """Get all logs for a book, newest first."""
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM reading_logs
                WHERE book_id = ?
                ORDER BY timestamp DESC, id DESC
                """,
                (book_id,)
            ).fetchall()

            return [self._row_to_log(row) for row in rows]

    def get_log(self, log_id: int) -> Optional[ReadingLog]:
        """Get a single log by ID."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM reading_logs WHERE id = ?",
                (log_id,)
            ).fetchone()

            if row:
                return self._row_to_log(row)
            return None

    def delete_log(self, log_id: int) -> bool:
        """Delete a single log."""
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM reading_logs WHERE id = ?",
                (log_id,)
            )
            return cursor.rowcount > 0

    # ==================== Settings ====================

    def get_setting(self, key: str) -> Optional[str]:
        """Get a preference value."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?",
                (key,)
            ).fetchone()
            return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        """Store a preference value."""
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, value)
            )
