# Fichier: flashsync/models/attempt_event_model.py

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from flashsync.db.base_class import Base


class AttemptEvent(Base):
    """
    Append-only log of reviews, with the schedule that resulted from each one.
    Feeds the daily statistics rollups.
    """
    __tablename__ = "attempt_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    learner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    base_content_unit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_units.id", ondelete="CASCADE"), index=True, nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    attempt_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # --- Schedule captured at that moment ---
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False)
    next_review_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_attempt_events_learner_at", "learner_id", "attempt_at"),
    )
