"""
Completion & Rating Gate
========================
Detects when a book reaches 100% and drives the one-time rating prompt.

The gate state is never stored. It is derived on every load from
(percent, status, rating):

    IN_PROGRESS -> AWAITING_RATING -> RATED

Book status only moves forward to FINISHED here. Moving it back when
progress later drops is opt-in (see allow_regression).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from booknest.errors import InvalidRatingError
from booknest.storage.models import BookStatus

MIN_RATING = 1
MAX_RATING = 5


class CompletionState(str, Enum):
    """Derived completion state of a book."""
    IN_PROGRESS = "in_progress"
    AWAITING_RATING = "awaiting_rating"
    RATED = "rated"


@dataclass(frozen=True)
class CompletionDecision:
    """
    Outcome of evaluating the gate for one load.

    Attributes:
        state: Derived completion state
        new_status: Status the book should be moved to, None to leave it
        just_finished: True only on the load where the book crossed into FINISHED
    """
    state: CompletionState
    new_status: Optional[BookStatus] = None
    just_finished: bool = False

    @property
    def prompt_rating(self) -> bool:
        return self.state == CompletionState.AWAITING_RATING


def evaluate_completion(
    percent: int,
    status: BookStatus,
    rating: int,
    allow_regression: bool = False
) -> CompletionDecision:
    """
    Evaluate the completion gate.

    Args:
        percent: Freshly computed percent complete
        status: Current stored book status
        rating: Current stored rating (0 = unrated)
        allow_regression: Move FINISHED back to READING when percent < 100

    Returns:
        CompletionDecision
    """
    new_status = None
    if allow_regression and status == BookStatus.FINISHED and percent < 100:
        new_status = BookStatus.READING

    if rating > 0:
        return CompletionDecision(state=CompletionState.RATED, new_status=new_status)

    if percent == 100:
        if status != BookStatus.FINISHED:
            return CompletionDecision(
                state=CompletionState.AWAITING_RATING,
                new_status=BookStatus.FINISHED,
                just_finished=True,
            )
        return CompletionDecision(state=CompletionState.AWAITING_RATING)

    return CompletionDecision(state=CompletionState.IN_PROGRESS, new_status=new_status)


def validate_rating(rating: int) -> int:
    """Check a star rating is a whole number from 1 to 5."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(rating)
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingError(rating)
    return rating
