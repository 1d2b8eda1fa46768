"""
Progress Calculator Tests
=========================
Tests for read coverage, next unread page and percent complete.
"""

from datetime import datetime

import pytest

from booknest.progress.calculator import (
    compute_progress,
    compute_read_pages,
    latest_progress_log,
    next_unread_page,
    percent_complete,
    round_half_up,
)
from booknest.storage.models import LogType, ProgressMode

from conftest import make_book, make_log


class TestComputeReadPages:
    """Tests for compute_read_pages()."""

    def test_notes_contribute_nothing(self):
        logs = [make_log(log_type=LogType.NOTE) for _ in range(3)]
        assert compute_read_pages(logs) == set()

    def test_percentage_logs_contribute_nothing(self):
        assert compute_read_pages([make_log(percentage=40.0)]) == set()

    def test_union_of_ranges(self):
        logs = [make_log(1, 10), make_log(21, 25)]
        assert compute_read_pages(logs) == set(range(1, 11)) | set(range(21, 26))

    def test_missing_start_page_starts_at_one(self):
        assert compute_read_pages([make_log(end_page=4)]) == {1, 2, 3, 4}

    def test_single_page(self):
        assert compute_read_pages([make_log(7, 7)]) == {7}


class TestNextUnreadPage:
    """Tests for next_unread_page()."""

    def test_empty_coverage_starts_at_one(self):
        assert next_unread_page(set(), 300) == 1

    def test_full_coverage_returns_past_end(self):
        assert next_unread_page(set(range(1, 301)), 300) == 301

    def test_returns_first_gap(self):
        assert next_unread_page({1, 2, 3, 5, 6}, 10) == 4

    def test_unknown_total(self):
        assert next_unread_page(set(), 0) == 1


class TestRoundHalfUp:
    """Tests for round_half_up()."""

    @pytest.mark.parametrize("value,expected", [
        (0.5, 1),
        (1.5, 2),
        (2.5, 3),
        (2.49, 2),
        (99.5, 100),
        (33.333, 33),
    ])
    def test_halves_round_up(self, value, expected):
        assert round_half_up(value) == expected


class TestPercentComplete:
    """Tests for percent_complete()."""

    def test_no_log_is_zero(self):
        assert percent_complete(make_book(), None) == 0
        assert percent_complete(make_book(progress_mode=ProgressMode.BY_PERCENTAGE), None) == 0

    def test_by_pages(self):
        assert percent_complete(make_book(total_pages=200), make_log(1, 100)) == 50

    def test_by_pages_rounds_half_up(self):
        # 1/8 = 12.5%
        assert percent_complete(make_book(total_pages=8), make_log(1, 1)) == 13

    def test_by_pages_unknown_total_divides_by_one(self):
        """A zero page count is treated as a divisor of 1; the result is not capped."""
        assert percent_complete(make_book(total_pages=0), make_log(1, 50)) == 5000

    def test_by_percentage(self):
        book = make_book(progress_mode=ProgressMode.BY_PERCENTAGE)
        assert percent_complete(book, make_log(percentage=42.5)) == 43
        assert percent_complete(book, make_log(percentage=100.0)) == 100

    def test_by_pages_uses_end_page_of_latest_log_only(self):
        """Percent comes from the latest snapshot, not total coverage."""
        assert percent_complete(make_book(total_pages=100), make_log(91, 100)) == 100


class TestComputeProgress:
    """Tests for the combined snapshot."""

    def test_latest_progress_log_by_timestamp(self):
        older = make_log(1, 10, timestamp=datetime(2026, 1, 1))
        newer = make_log(11, 20, timestamp=datetime(2026, 1, 2))
        note = make_log(log_type=LogType.NOTE, timestamp=datetime(2026, 1, 3))

        assert latest_progress_log([older, note, newer]) is newer
        assert latest_progress_log([note]) is None

    def test_scenario_half_read(self):
        book = make_book(total_pages=300)
        snapshot = compute_progress(book, [make_log(1, 150)])

        assert snapshot.percent == 50
        assert snapshot.next_unread_page == 151
        assert snapshot.pages_read == 150
        assert not snapshot.is_complete

    def test_complete(self):
        book = make_book(total_pages=10)
        snapshot = compute_progress(book, [
            make_log(1, 5, timestamp=datetime(2026, 1, 1)),
            make_log(6, 10, timestamp=datetime(2026, 1, 2)),
        ])

        assert snapshot.is_complete
        assert snapshot.next_unread_page == 11
