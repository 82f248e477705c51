"""Current spaced-repetition state per learner and canonical card."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from flashsync.db.base_class import Base


class ScheduleState(Base):
    """Keyed by the base card id, never by a variant id."""

    __tablename__ = "schedule_states"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    learner_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    base_content_unit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_units.id", ondelete="CASCADE"), index=True, nullable=False
    )

    ease_factor: Mapped[float] = mapped_column(Float, default=2.5, nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    repetitions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime)
    next_review_date: Mapped[datetime | None] = mapped_column(DateTime, index=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("learner_id", "base_content_unit_id", name="uq_schedule_learner_card"),
    )
    __mapper_args__ = {"version_id_col": version}


__all__ = ["ScheduleState"]
