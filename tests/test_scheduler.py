from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from flashsync.core.errors import InvalidRating
from flashsync.services.scheduler import (
    DEFAULT_EASE_FACTOR,
    MIN_EASE_FACTOR,
    advance,
    ease_delta,
    is_successful_rating,
    validate_rating,
)

NOW = datetime(2024, 3, 1, 9, 0, 0)


def _state(ease_factor=DEFAULT_EASE_FACTOR, interval_days=0, repetitions=0):
    return SimpleNamespace(
        ease_factor=ease_factor, interval_days=interval_days, repetitions=repetitions
    )


def test_new_card_passing_sequence_follows_one_six_then_ease():
    result = advance(3, None, NOW)
    assert (result.repetitions, result.interval_days, result.ease_factor) == (1, 1, 2.5)

    result = advance(3, result, NOW)
    assert (result.repetitions, result.interval_days, result.ease_factor) == (2, 6, 2.5)

    result = advance(4, result, NOW)
    assert result.repetitions == 3
    assert result.ease_factor == pytest.approx(2.6)
    assert result.interval_days == 16
    assert result.next_review_date == NOW + timedelta(days=16)
    assert result.attempted_at == NOW


def test_failure_resets_streak_and_respects_ease_floor():
    result = advance(1, _state(ease_factor=MIN_EASE_FACTOR, interval_days=40, repetitions=7), NOW)

    assert result.repetitions == 0
    assert result.interval_days == 1
    assert result.ease_factor == MIN_EASE_FACTOR
    assert result.next_review_date == NOW + timedelta(days=1)


def test_lapse_on_a_mature_card():
    result = advance(1, _state(ease_factor=2.2, interval_days=10, repetitions=3), NOW)

    assert result.repetitions == 0
    assert result.interval_days == 1
    assert result.ease_factor == pytest.approx(1.88)


def test_hard_rating_lowers_ease_and_resets():
    result = advance(2, _state(interval_days=6, repetitions=2), NOW)

    assert result.ease_factor == pytest.approx(2.36)
    assert result.repetitions == 0
    assert result.interval_days == 1


def test_pass_after_failure_starts_again_at_one_day():
    failed = advance(1, _state(interval_days=20, repetitions=4), NOW)
    result = advance(3, failed, NOW)

    assert result.repetitions == 1
    assert result.interval_days == 1
    assert result.ease_factor == pytest.approx(2.18)


def test_interval_rounds_half_up():
    result = advance(3, _state(ease_factor=2.5, interval_days=5, repetitions=3), NOW)
    assert result.interval_days == 13


def test_interval_never_drops_below_one_day():
    result = advance(3, _state(ease_factor=1.3, interval_days=0, repetitions=5), NOW)
    assert result.interval_days == 1


def test_ease_delta_values():
    assert ease_delta(4) == pytest.approx(0.10)
    assert ease_delta(3) == pytest.approx(0.0)
    assert ease_delta(2) == pytest.approx(-0.14)
    assert ease_delta(1) == pytest.approx(-0.32)


def test_successful_ratings():
    assert [is_successful_rating(r) for r in (1, 2, 3, 4)] == [False, False, True, True]


@pytest.mark.parametrize("rating", [0, 5, -1, True, "3", 3.0, None])
def test_invalid_ratings_are_rejected(rating):
    with pytest.raises(InvalidRating) as exc:
        validate_rating(rating)
    assert exc.value.code == "invalid_rating"
    assert exc.value.status_code == 422


def test_advance_validates_before_computing():
    with pytest.raises(InvalidRating):
        advance(7, _state(), NOW)


def test_aware_timestamps_are_stored_as_naive_utc():
    aware = datetime(2024, 3, 1, 11, 0, tzinfo=timezone(timedelta(hours=2)))
    result = advance(4, None, aware)

    assert result.attempted_at == NOW
    assert result.attempted_at.tzinfo is None
