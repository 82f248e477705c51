"""A question/answer pair in one language."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flashsync.db.base_class import Base

if TYPE_CHECKING:
    from .study_scope_model import StudyScope


class ContentUnit(Base):
    """Base cards are written in the base language; variants hang off a mapping."""

    __tablename__ = "content_units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    scope_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("study_scopes.id", ondelete="CASCADE"), index=True
    )
    language: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    is_manually_authored: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    scope: Mapped["StudyScope"] = relationship(back_populates="units")

    def __repr__(self):
        return f"<ContentUnit(id={self.id}, language='{self.language}', scope_id={self.scope_id})>"


__all__ = ["ContentUnit"]
