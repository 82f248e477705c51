"""Content-scope provider: which base cards belong to a scope."""

from __future__ import annotations

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from flashsync.core.errors import NotFound
from flashsync.models.content_unit_model import ContentUnit
from flashsync.models.study_scope_model import StudyScope
from flashsync.models.translation_mapping_model import TranslationMapping


class ScopeProvider:
    def __init__(self, db: Session):
        self.db = db

    def get_scope(self, scope_id: int, operation: str | None = None) -> StudyScope:
        scope = self.db.get(StudyScope, scope_id)
        if scope is None:
            raise NotFound("scope", scope_id, operation=operation)
        return scope

    def create_scope(self, title: str, base_language: str, parent_id: int | None = None) -> StudyScope:
        if parent_id is not None:
            self.get_scope(parent_id, operation="create_scope")
        scope = StudyScope(title=title.strip(), base_language=base_language, parent_id=parent_id)
        self.db.add(scope)
        self.db.flush()
        return scope

    def collect_scope_ids(self, scope_id: int) -> List[int]:
        """The scope itself followed by its descendants, breadth first."""

        self.get_scope(scope_id, operation="collect_scope_ids")
        ordered = [scope_id]
        seen = {scope_id}
        frontier = [scope_id]
        while frontier:
            children = self.db.execute(
                select(StudyScope.id)
                .where(StudyScope.parent_id.in_(frontier))
                .order_by(StudyScope.created_at, StudyScope.id)
            ).scalars().all()
            frontier = [child for child in children if child not in seen]
            seen.update(frontier)
            ordered.extend(frontier)
        return ordered

    def list_base_units(self, scope_id: int) -> List[ContentUnit]:
        """Ordered base cards of the scope tree; translated variants are excluded."""

        scope_ids = self.collect_scope_ids(scope_id)
        is_variant = select(TranslationMapping.id).where(
            TranslationMapping.variant_id == ContentUnit.id
        ).exists()
        units = self.db.execute(
            select(ContentUnit)
            .where(ContentUnit.scope_id.in_(scope_ids), ~is_variant)
            .order_by(ContentUnit.created_at, ContentUnit.id)
        ).scalars().all()

        position = {sid: index for index, sid in enumerate(scope_ids)}
        return sorted(units, key=lambda unit: position[unit.scope_id])

    def list_manual_units(self, scope_id: int) -> List[ContentUnit]:
        """Base cards authored by hand; generation re-runs leave them alone."""

        return [unit for unit in self.list_base_units(scope_id) if unit.is_manually_authored]


__all__ = ["ScopeProvider"]
