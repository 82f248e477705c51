"""SM-2 style rating scheduler.

``advance`` is pure: it reads the prior scheduling values and returns new
ones without touching the database. Ratings are ordinal, from 1 (total
failure) to 4 (trivially easy); 1 and 2 reset the repetition streak.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

from flashsync.core.errors import InvalidRating
from flashsync.utils.time_utils import as_naive_utc, utcnow

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
VALID_RATINGS = (1, 2, 3, 4)
PASSING_RATING = 3

FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
FAILED_INTERVAL_DAYS = 1


class PriorState(Protocol):
    ease_factor: float
    interval_days: int
    repetitions: int


@dataclass(frozen=True)
class SchedulingResult:
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_date: datetime
    attempted_at: datetime


def validate_rating(rating: Any) -> int:
    """Return *rating* as an int or raise ``InvalidRating``."""

    # bool is an int subclass; True must not pass as rating 1.
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(rating)
    if rating not in VALID_RATINGS:
        raise InvalidRating(rating)
    return rating


def is_successful_rating(rating: int) -> bool:
    return rating >= PASSING_RATING


def ease_delta(rating: int) -> float:
    """+0.10 for 4, 0.00 for 3, -0.14 for 2 and -0.32 for 1."""

    distance = 4 - rating
    return (10 - distance * (8 + distance * 2)) / 100


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def advance(rating: Any, prior: PriorState | None = None, now: datetime | None = None) -> SchedulingResult:
    """Compute the schedule that follows *rating* given the *prior* state.

    A missing prior state is a new card: ``repetitions=0``,
    ``ease_factor=2.5`` and ``interval_days=0``.
    """

    rating = validate_rating(rating)
    now = as_naive_utc(now) or utcnow()

    ease_factor = DEFAULT_EASE_FACTOR
    repetitions = 0
    interval_days = 0
    if prior is not None:
        if prior.ease_factor is not None:
            ease_factor = prior.ease_factor
        repetitions = prior.repetitions or 0
        interval_days = prior.interval_days or 0

    ease_factor = max(MIN_EASE_FACTOR, round(ease_factor + ease_delta(rating), 2))

    if not is_successful_rating(rating):
        repetitions = 0
        interval_days = FAILED_INTERVAL_DAYS
    else:
        repetitions += 1
        if repetitions == 1:
            interval_days = FIRST_INTERVAL_DAYS
        elif repetitions == 2:
            interval_days = SECOND_INTERVAL_DAYS
        else:
            interval_days = _round_half_up(interval_days * ease_factor)

    # Rounding or a corrupted prior interval must never yield a same-day review.
    interval_days = max(1, interval_days)

    return SchedulingResult(
        ease_factor=ease_factor,
        interval_days=interval_days,
        repetitions=repetitions,
        next_review_date=now + timedelta(days=interval_days),
        attempted_at=now,
    )


__all__ = [
    "DEFAULT_EASE_FACTOR",
    "MIN_EASE_FACTOR",
    "VALID_RATINGS",
    "SchedulingResult",
    "advance",
    "ease_delta",
    "is_successful_rating",
    "validate_rating",
]
