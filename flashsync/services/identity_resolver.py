"""Single definition of a card's canonical (base) identity."""

from __future__ import annotations

from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from flashsync.core.errors import NotFound
from flashsync.models.content_unit_model import ContentUnit
from flashsync.models.translation_mapping_model import TranslationMapping


class IdentityResolver:
    """Map any card id (base or translated variant) to its base id.

    Every read or write of schedule states and attempt events goes through
    this class so a variant id never reaches those tables.
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve_base(self, content_unit_id: int) -> int:
        """Return the base id for *content_unit_id*; base ids map to themselves."""

        base_id = self.db.execute(
            select(TranslationMapping.base_id).where(
                TranslationMapping.variant_id == content_unit_id
            )
        ).scalar_one_or_none()
        return base_id if base_id is not None else content_unit_id

    def resolve_many(self, content_unit_ids: Iterable[int]) -> Dict[int, int]:
        """Resolve several ids with one query. Unknown variants map to themselves."""

        ids = list(dict.fromkeys(content_unit_ids))
        if not ids:
            return {}
        rows = self.db.execute(
            select(TranslationMapping.variant_id, TranslationMapping.base_id).where(
                TranslationMapping.variant_id.in_(ids)
            )
        ).all()
        resolved = {variant_id: base_id for variant_id, base_id in rows}
        return {unit_id: resolved.get(unit_id, unit_id) for unit_id in ids}

    def is_variant(self, content_unit_id: int) -> bool:
        return self.resolve_base(content_unit_id) != content_unit_id

    def require_unit(self, content_unit_id: int, operation: str | None = None) -> ContentUnit:
        unit = self.db.get(ContentUnit, content_unit_id)
        if unit is None:
            raise NotFound("content_unit", content_unit_id, operation=operation)
        return unit

    def require_base(self, content_unit_id: int, operation: str | None = None) -> int:
        """Like ``resolve_base`` but raises ``NotFound`` for unknown ids."""

        self.require_unit(content_unit_id, operation=operation)
        return self.resolve_base(content_unit_id)


__all__ = ["IdentityResolver"]
