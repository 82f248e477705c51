"""Collections of cards (a topic, a generated summary, a manual deck)."""

from __future__ import annotations

from datetime import datetime
from typing import List, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flashsync.db.base_class import Base

if TYPE_CHECKING:
    from .content_unit_model import ContentUnit


class StudyScope(Base):
    """A scope may contain sub-scopes; the due set spans the whole tree."""

    __tablename__ = "study_scopes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("study_scopes.id", ondelete="CASCADE"), index=True
    )
    base_language: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    parent: Mapped["StudyScope | None"] = relationship(
        back_populates="children", remote_side="StudyScope.id"
    )
    children: Mapped[List["StudyScope"]] = relationship(
        back_populates="parent", cascade="all, delete-orphan", passive_deletes=True
    )
    units: Mapped[List["ContentUnit"]] = relationship(
        back_populates="scope", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<StudyScope(id={self.id}, title='{self.title}', parent_id={self.parent_id})>"


__all__ = ["StudyScope"]
