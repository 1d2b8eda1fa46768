"""
Progress Module
===============
Pure derivations over a book's reading logs.

Key Components:
    - calculator: read coverage, next unread page, percent complete
    - validator: page range and log entry validation
    - completion: completion detection and the rating gate
"""

from .calculator import (
    ProgressSnapshot,
    compute_progress,
    compute_read_pages,
    latest_progress_log,
    next_unread_page,
    percent_complete,
    round_half_up,
)
from .completion import (
    CompletionDecision,
    CompletionState,
    evaluate_completion,
    validate_rating,
)
from .validator import (
    validate_log_entry,
    validate_page_range,
    validate_percentage,
)

__all__ = [
    "ProgressSnapshot",
    "compute_progress",
    "compute_read_pages",
    "latest_progress_log",
    "next_unread_page",
    "percent_complete",
    "round_half_up",
    "CompletionDecision",
    "CompletionState",
    "evaluate_completion",
    "validate_rating",
    "validate_log_entry",
    "validate_page_range",
    "validate_percentage",
]
