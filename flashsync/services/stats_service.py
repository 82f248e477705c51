"""Statistics rollups computed from the attempt log."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Dict, List

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from flashsync.models.attempt_event_model import AttemptEvent
from flashsync.models.schedule_state_model import ScheduleState
from flashsync.services.scheduler import PASSING_RATING, is_successful_rating
from flashsync.utils.time_utils import utcnow

STREAK_LOOKBACK_DAYS = 365


class StatsService:
    """Daily metrics, streaks and retention for one learner."""

    def __init__(self, db: Session, learner_id: str):
        self.db = db
        self.learner_id = learner_id

    # ------------------------------------------------------------------
    # Public reporting helpers
    # ------------------------------------------------------------------
    def daily_metrics(self, days: int = 7, today: date | None = None) -> List[dict]:
        """One entry per day, oldest first, including days without attempts."""

        days = max(1, days)
        today = today or utcnow().date()
        first_day = today - timedelta(days=days - 1)

        buckets: Dict[date, dict] = {}
        for offset in range(days):
            day = first_day + timedelta(days=offset)
            buckets[day] = {"date": day, "attempts": 0, "correct": 0, "incorrect": 0}

        for attempt_at, rating in self._ratings_since(datetime.combine(first_day, time.min)):
            bucket = buckets.get(attempt_at.date())
            if bucket is None:
                continue
            bucket["attempts"] += 1
            if is_successful_rating(rating):
                bucket["correct"] += 1
            else:
                bucket["incorrect"] += 1

        entries = []
        for bucket in buckets.values():
            attempts = bucket["attempts"]
            bucket["accuracy"] = round(bucket["correct"] / attempts * 100, 1) if attempts else 0.0
            entries.append(bucket)
        return entries

    def study_streak(self, today: date | None = None) -> int:
        """Consecutive study days ending today, or yesterday if today is still empty."""

        today = today or utcnow().date()
        since = datetime.combine(today - timedelta(days=STREAK_LOOKBACK_DAYS), time.min)
        study_days = {attempt_at.date() for attempt_at, _ in self._ratings_since(since)}

        if today in study_days:
            expected = today
        elif today - timedelta(days=1) in study_days:
            expected = today - timedelta(days=1)
        else:
            return 0

        streak = 0
        while expected in study_days:
            streak += 1
            expected -= timedelta(days=1)
        return streak

    def overview(self, now: datetime | None = None) -> dict:
        now = now or utcnow()
        today = now.date()

        total_attempts, total_correct, cards_studied = self._totals()
        due_now = self.db.execute(
            select(func.count(ScheduleState.id)).where(
                ScheduleState.learner_id == self.learner_id,
                ScheduleState.next_review_date <= now,
            )
        ).scalar_one()

        return {
            "total_attempts": total_attempts,
            "average_accuracy": round(total_correct / total_attempts * 100, 1) if total_attempts else 0.0,
            "cards_studied": cards_studied,
            "due_now": due_now,
            "study_streak": self.study_streak(today),
            "retention_7_days": self._retention_ratio(7, now),
            "retention_30_days": self._retention_ratio(30, now),
            "recent_days": self.daily_metrics(7, today),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _ratings_since(self, since: datetime) -> List[tuple[datetime, int]]:
        rows = self.db.execute(
            select(AttemptEvent.attempt_at, AttemptEvent.rating)
            .where(
                AttemptEvent.learner_id == self.learner_id,
                AttemptEvent.attempt_at >= since,
            )
            .order_by(AttemptEvent.attempt_at)
        ).all()
        return [(attempt_at, rating) for attempt_at, rating in rows]

    def _totals(self) -> tuple[int, int, int]:
        row = self.db.execute(
            select(
                func.count(AttemptEvent.id),
                func.coalesce(func.sum(case((AttemptEvent.rating >= PASSING_RATING, 1), else_=0)), 0),
                func.count(func.distinct(AttemptEvent.base_content_unit_id)),
            ).where(AttemptEvent.learner_id == self.learner_id)
        ).one()
        return int(row[0] or 0), int(row[1] or 0), int(row[2] or 0)

    def _retention_ratio(self, days: int, now: datetime) -> float | None:
        ratings = [rating for _, rating in self._ratings_since(now - timedelta(days=days))]
        if not ratings:
            return None
        successes = sum(1 for rating in ratings if is_successful_rating(rating))
        return round(successes / len(ratings), 3)


__all__ = ["StatsService"]
