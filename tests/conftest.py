import pytest
from datetime import datetime, timedelta
from pathlib import Path
import sys

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from booknest.app.config import AppConfig
from booknest.app.controller import ReadingController
from booknest.reminders.notifier import INotificationService
from booknest.storage.models import (
    Book,
    BookCreate,
    BookStatus,
    LogType,
    ProgressMode,
    ReadingLog,
)
from booknest.storage.sqlite_repo import SQLiteRepository


class FakeClock:
    """Controllable local clock."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingNotifier(INotificationService):
    """Notification host that records calls instead of delivering."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.scheduled = []
        self.cancel_calls = 0

    def schedule(self, payload, trigger_at):
        if self.fail:
            raise RuntimeError("host rejected the trigger")
        self.scheduled.append((payload, trigger_at))
        return len(self.scheduled)

    def cancel_all(self):
        self.cancel_calls += 1
        count = len(self.scheduled)
        self.scheduled.clear()
        return count


@pytest.fixture
def clock():
    """Clock fixed at 2026-03-01 12:00 until advanced."""
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "booknest.db"


@pytest.fixture
def repo(db_path, clock):
    """Fresh SQLite repository in a temp directory."""
    return SQLiteRepository(db_path, clock=clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def config(tmp_path):
    return AppConfig(data_dir=tmp_path / "data")


@pytest.fixture
def controller(config, repo, notifier, clock):
    """Controller wired to the temp repository and recording notifier."""
    return ReadingController(config=config, repository=repo, notifier=notifier, clock=clock)


@pytest.fixture
def paged_book(repo):
    """300-page book tracked by pages."""
    return repo.create_book(BookCreate(
        title="The Name of the Wind",
        author="Patrick Rothfuss",
        category="Fantasy",
        status=BookStatus.READING,
        total_pages=300,
    ))


@pytest.fixture
def percent_book(repo):
    """Book tracked by percentage."""
    return repo.create_book(BookCreate(
        title="Dune",
        author="Frank Herbert",
        total_pages=412,
        progress_mode=ProgressMode.BY_PERCENTAGE,
    ))


def make_book(
    total_pages: int = 300,
    progress_mode: ProgressMode = ProgressMode.BY_PAGES,
    status: BookStatus = BookStatus.READING,
    rating: int = 0,
    due_date=None,
    book_id: int = 1,
    title: str = "Test Book",
) -> Book:
    """Build an in-memory Book without touching storage."""
    return Book(
        id=book_id,
        title=title,
        author="Author",
        category="",
        status=status,
        total_pages=total_pages,
        progress_mode=progress_mode,
        rating=rating,
        favorite=False,
        due_date=due_date,
        cover_image=None,
        description=None,
        created_at=datetime(2026, 1, 1),
    )


_log_ids = iter(range(1, 1_000_000))


def make_log(
    start_page=None,
    end_page=None,
    percentage=None,
    log_type: LogType = LogType.PROGRESS,
    timestamp: datetime = datetime(2026, 1, 1),
    book_id: int = 1,
) -> ReadingLog:
    """Build an in-memory ReadingLog without touching storage."""
    return ReadingLog(
        id=next(_log_ids),
        book_id=book_id,
        type=log_type,
        start_page=start_page,
        end_page=end_page,
        percentage=percentage,
        description=None,
        emoji=None,
        session_duration=None,
        status=BookStatus.READING,
        timestamp=timestamp,
    )
