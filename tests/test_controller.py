"""
Reading Controller Tests
========================
End-to-end tests through the controller against a temp SQLite database.
"""

from datetime import datetime, timedelta

import pytest

from booknest.app.config import AppConfig
from booknest.app.controller import NOTIFICATIONS_ENABLED_KEY, ReadingController
from booknest.app.events import EventType
from booknest.errors import (
    BookNotFoundError,
    DuplicateRangeError,
    InvalidRangeError,
    InvalidRatingError,
    LogNotFoundError,
    ProgressModeError,
)
from booknest.progress.completion import CompletionState
from booknest.reminders.notifier import SQLiteNotificationService
from booknest.reminders.scheduler import ReminderState
from booknest.storage.models import BookCreate, BookStatus, LogType

from conftest import RecordingNotifier


class TestLogging:
    """Tests for progress, session and note capture."""

    def test_half_read_book(self, controller, paged_book):
        projection = controller.log_progress(paged_book.id, start_page=1, end_page=150)

        assert projection.percent == 50
        assert projection.next_unread_page == 151
        assert projection.completion.state == CompletionState.IN_PROGRESS

    def test_overlap_rejected_and_nothing_written(self, controller, paged_book):
        controller.log_progress(paged_book.id, start_page=1, end_page=150)

        with pytest.raises(DuplicateRangeError) as exc_info:
            controller.log_progress(paged_book.id, start_page=100, end_page=120)

        assert exc_info.value.page == 100
        assert len(controller.history(paged_book.id)) == 1

    def test_session_records_duration(self, controller, paged_book):
        projection = controller.log_session(paged_book.id, 1800, start_page=1, end_page=30)

        log = projection.logs[0]
        assert log.type == LogType.SESSION
        assert log.session_duration == 1800
        assert projection.next_unread_page == 31

    def test_note_does_not_move_progress(self, controller, paged_book):
        controller.log_progress(paged_book.id, start_page=1, end_page=30)
        note = controller.add_note(paged_book.id, "Great chapter", emoji="📖")

        assert note.type == LogType.NOTE
        assert note.emoji == "📖"
        assert controller.load_book(paged_book.id).percent == 10

    def test_first_log_starts_reading(self, controller, repo):
        book = controller.add_book(BookCreate(title="Unread", total_pages=100))
        assert book.status == BookStatus.TO_READ

        projection = controller.log_progress(book.id, start_page=1, end_page=10)

        assert projection.book.status == BookStatus.READING
        assert projection.logs[0].status == BookStatus.READING

    def test_note_keeps_unread_status(self, controller):
        book = controller.add_book(BookCreate(title="Unread", total_pages=100))
        controller.add_note(book.id, "Looks promising")

        assert controller.get_book(book.id).status == BookStatus.TO_READ

    def test_percentage_book(self, controller, percent_book):
        projection = controller.log_progress(percent_book.id, percentage=42.5)

        assert projection.percent == 43
        assert projection.book.status == BookStatus.READING

    def test_mode_mismatch_rejected(self, controller, percent_book):
        with pytest.raises(ProgressModeError):
            controller.log_progress(percent_book.id, start_page=1, end_page=10)
        assert controller.history(percent_book.id) == []

    def test_delete_log_reopens_pages(self, controller, paged_book):
        projection = controller.log_progress(paged_book.id, start_page=1, end_page=50)
        projection = controller.delete_log(projection.logs[0].id)

        assert projection.percent == 0
        assert projection.next_unread_page == 1
        controller.log_progress(paged_book.id, start_page=1, end_page=50)

    def test_unknown_ids(self, controller):
        with pytest.raises(BookNotFoundError):
            controller.log_progress(999, end_page=10)
        with pytest.raises(LogNotFoundError):
            controller.delete_log(999)


class TestCompletion:
    """Tests for the completion gate through the controller."""

    def _finish(self, controller, book_id):
        controller.log_progress(book_id, start_page=1, end_page=150)
        return controller.log_progress(book_id, start_page=151, end_page=300)

    def test_reaching_last_page_finishes_and_prompts(self, controller, paged_book):
        projection = self._finish(controller, paged_book.id)

        assert projection.percent == 100
        assert projection.book.status == BookStatus.FINISHED
        assert projection.prompt_rating
        assert controller.get_book(paged_book.id).status == BookStatus.FINISHED

    def test_rating_persists_and_stops_prompting(self, controller, paged_book):
        self._finish(controller, paged_book.id)

        projection = controller.submit_rating(paged_book.id, 4)

        assert projection.book.rating == 4
        assert projection.completion.state == CompletionState.RATED
        assert not controller.load_book(paged_book.id).prompt_rating

    def test_invalid_rating_rejected(self, controller, paged_book):
        self._finish(controller, paged_book.id)

        with pytest.raises(InvalidRatingError):
            controller.submit_rating(paged_book.id, 6)
        assert controller.get_book(paged_book.id).rating == 0

    def test_finished_status_survives_log_deletion(self, controller, paged_book):
        projection = self._finish(controller, paged_book.id)

        projection = controller.delete_log(projection.logs[0].id)

        assert projection.percent == 50
        assert projection.book.status == BookStatus.FINISHED

    def test_regression_when_configured(self, tmp_path, repo, notifier, clock, paged_book):
        config = AppConfig(data_dir=tmp_path / "data", allow_status_regression=True)
        controller = ReadingController(config=config, repository=repo, notifier=notifier, clock=clock)
        projection = self._finish(controller, paged_book.id)

        projection = controller.delete_log(projection.logs[0].id)
        assert projection.book.status == BookStatus.READING

    def test_loading_finished_book_never_regresses(self, tmp_path, repo, notifier, clock):
        """A book added as Finished keeps its status on load even with regression allowed."""
        config = AppConfig(data_dir=tmp_path / "data", allow_status_regression=True)
        controller = ReadingController(config=config, repository=repo, notifier=notifier, clock=clock)
        book = controller.add_book(BookCreate(
            title="Already Read", status=BookStatus.FINISHED, rating=5, total_pages=200
        ))

        projection = controller.load_book(book.id)

        assert projection.book.status == BookStatus.FINISHED
        assert controller.get_book(book.id).status == BookStatus.FINISHED

    def test_deleting_note_does_not_regress(self, tmp_path, repo, notifier, clock):
        config = AppConfig(data_dir=tmp_path / "data", allow_status_regression=True)
        controller = ReadingController(config=config, repository=repo, notifier=notifier, clock=clock)
        book = controller.add_book(BookCreate(
            title="Already Read", status=BookStatus.FINISHED, total_pages=200
        ))
        note = controller.add_note(book.id, "Reread someday")

        projection = controller.delete_log(note.id)
        assert projection.book.status == BookStatus.FINISHED


class TestLibrary:
    """Tests for book management."""

    def test_favorites_and_filters(self, controller, paged_book, percent_book):
        assert controller.toggle_favorite(paged_book.id) is True

        favorites = controller.list_books(favorite=True)
        assert [b.id for b in favorites] == [paged_book.id]
        assert [b.id for b in controller.list_books(search="dune")] == [percent_book.id]

    def test_update_book(self, controller, paged_book):
        book = controller.update_book(paged_book.id, total_pages=400)
        assert book.total_pages == 400

    def test_page_count_cannot_drop_below_logged_pages(self, controller, paged_book):
        controller.log_progress(paged_book.id, start_page=1, end_page=150)

        with pytest.raises(InvalidRangeError):
            controller.update_book(paged_book.id, total_pages=100)

        assert controller.get_book(paged_book.id).total_pages == 300
        assert controller.update_book(paged_book.id, total_pages=150).total_pages == 150
        assert controller.load_book(paged_book.id).percent == 100

    def test_delete_book_removes_logs(self, controller, paged_book):
        controller.log_progress(paged_book.id, start_page=1, end_page=10)
        controller.delete_book(paged_book.id)

        with pytest.raises(BookNotFoundError):
            controller.history(paged_book.id)


class TestReminders:
    """Tests for due dates and the notification preference."""

    def test_preference_defaults_off(self, controller, notifier, clock):
        book = controller.add_book(BookCreate(title="Emma", due_date=clock.now + timedelta(days=3)))

        assert not controller.notifications_enabled()
        assert notifier.scheduled == []
        assert controller.load_book(book.id).reminder == ReminderState.CANCELLED

    def test_rename_reschedules_with_new_title(self, controller, notifier, clock):
        controller.set_notifications_enabled(True)
        book = controller.add_book(BookCreate(title="Old", due_date=clock.now + timedelta(days=2)))

        controller.update_book(book.id, title="New")

        assert [payload.body for payload, _ in notifier.scheduled] == ['Your book "New" is due!']

    def test_rename_without_due_date_leaves_reminders_alone(self, controller, notifier, paged_book):
        controller.set_notifications_enabled(True)
        cancels = notifier.cancel_calls

        controller.update_book(paged_book.id, title="Renamed")
        assert notifier.cancel_calls == cancels

    def test_add_book_schedules_when_enabled(
self, controller, notifier, clock):
        controller.set_notifications_enabled(True)
        due = clock.now + timedelta(days=3)
        book = controller.add_book(BookCreate(title="Emma", due_date=due))

        payload, trigger = notifier.scheduled[0]
        assert payload.body == 'Your book "Emma" is due!'
        assert trigger == due
        assert controller.load_book(book.id).reminder == ReminderState.SCHEDULED

    def test_preference_is_stored(self, controller, repo):
        controller.set_notifications_enabled(True)
        assert repo.get_setting(NOTIFICATIONS_ENABLED_KEY) == "true"

        controller.set_notifications_enabled(False)
        assert repo.get_setting(NOTIFICATIONS_ENABLED_KEY) == "false"
        assert not controller.notifications_enabled()

    def test_disabling_cancels_everything(self, controller, notifier, clock):
        controller.set_notifications_enabled(True)
        controller.add_book(BookCreate(title="A", due_date=clock.now + timedelta(days=1)))
        controller.add_book(BookCreate(title="B", due_date=clock.now + timedelta(days=2)))

        result = controller.set_notifications_enabled(False)

        assert result.scheduled == {}
        assert notifier.scheduled == []

    def test_changing_due_date_leaves_single_trigger(self, controller, notifier, clock, paged_book):
        controller.set_notifications_enabled(True)
        controller.set_due_date(paged_book.id, clock.now + timedelta(days=1))

        new_due = clock.now + timedelta(days=5)
        controller.set_due_date(paged_book.id, new_due)

        assert [trigger for _, trigger in notifier.scheduled] == [new_due]

    def test_clearing_due_date(self, controller, notifier, clock, paged_book):
        controller.set_notifications_enabled(True)
        controller.set_due_date(paged_book.id, clock.now + timedelta(days=1))
        controller.set_due_date(paged_book.id, None)

        assert notifier.scheduled == []
        assert controller.load_book(paged_book.id).reminder == ReminderState.NO_REMINDER

    def test_past_due_date_not_scheduled(self, controller, notifier, clock, paged_book):
        controller.set_notifications_enabled(True)
        result = controller.set_due_date(paged_book.id, clock.now - timedelta(days=1))

        assert result.past_due == [paged_book.id]
        assert notifier.scheduled == []
        assert controller.load_book(paged_book.id).reminder == ReminderState.FIRED

    def test_deleting_book_drops_its_reminder(self, controller, notifier, clock):
        controller.set_notifications_enabled(True)
        book = controller.add_book(BookCreate(title="Gone", due_date=clock.now + timedelta(days=1)))

        controller.delete_book(book.id)
        assert notifier.scheduled == []

    def test_host_failure_does_not_break_due_date(self, config, repo, clock, paged_book):
        controller = ReadingController(
            config=config, repository=repo, notifier=RecordingNotifier(fail=True), clock=clock
        )
        controller.set_notifications_enabled(True)

        result = controller.set_due_date(paged_book.id, clock.now + timedelta(days=1))

        assert result.failed == [paged_book.id]
        assert controller.get_book(paged_book.id).due_date is not None
        assert controller.load_book(paged_book.id).reminder == ReminderState.SCHEDULED

    def test_fire_due_reminders(self, config, repo, db_path, clock, paged_book):
        notifier = SQLiteNotificationService(db_path, clock=clock)
        controller = ReadingController(config=config, repository=repo, notifier=notifier, clock=clock)
        controller.set_notifications_enabled(True)
        controller.set_due_date(paged_book.id, clock.now + timedelta(hours=2))

        assert len(controller.pending_reminders()) == 1
        assert controller.fire_due_reminders() == []

        clock.advance(hours=3)
        fired = controller.fire_due_reminders()

        assert [n.payload.title for n in fired] == ["Deadline Reminder"]
        assert controller.pending_reminders() == []


class TestEvents:
    """Tests for events emitted to on_event listeners."""

    def test_finish_emits_state_and_progress(self, config, repo, notifier, clock, paged_book):
        events = []
        controller = ReadingController(
            config=config, repository=repo, notifier=notifier, clock=clock, on_event=events.append
        )

        controller.log_progress(paged_book.id, start_page=1, end_page=300)

        states = [e.state for e in events if e.event_type == EventType.STATE]
        progress = [e for e in events if e.event_type == EventType.PROGRESS]

        assert states == ["finished", "awaiting_rating"]
        assert progress[-1].percent == 100
        assert progress[-1].next_unread_page == 301

    def test_toggle_emits_log_event(self, config, repo, notifier, clock):
        events = []
        controller = ReadingController(
            config=config, repository=repo, notifier=notifier, clock=clock, on_event=events.append
        )

        controller.set_notifications_enabled(True)
        assert events[0].event_type == EventType.LOG
        assert events[0].message == "notifications enabled"
