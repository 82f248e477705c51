"""Link between a base card and its variant in one other language."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flashsync.db.base_class import Base
from .content_unit_model import ContentUnit


class TranslationMapping(Base):
    """Immutable once written. Doubles as the source of truth for identity resolution."""

    __tablename__ = "translation_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    base_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_units.id", ondelete="CASCADE"), index=True, nullable=False
    )
    target_language: Mapped[str] = mapped_column(String(8), nullable=False)
    variant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_units.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    base: Mapped[ContentUnit] = relationship(foreign_keys=[base_id])
    variant: Mapped[ContentUnit] = relationship(foreign_keys=[variant_id])

    __table_args__ = (
        UniqueConstraint("base_id", "target_language", name="uq_translation_base_language"),
        UniqueConstraint("variant_id", name="uq_translation_variant"),
    )


__all__ = ["TranslationMapping"]
