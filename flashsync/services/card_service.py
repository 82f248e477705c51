"""Manual card authoring and deletion of whole card groups."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from flashsync.core.errors import InvalidCardContent
from flashsync.core.languages import normalize_language
from flashsync.models.attempt_event_model import AttemptEvent
from flashsync.models.content_unit_model import ContentUnit
from flashsync.models.schedule_state_model import ScheduleState
from flashsync.models.translation_mapping_model import TranslationMapping
from flashsync.services.identity_resolver import IdentityResolver
from flashsync.services.scope_provider import ScopeProvider

logger = logging.getLogger(__name__)

MAX_CARD_TEXT_LENGTH = 4000


def _clean_text(value: str | None, field_name: str, operation: str) -> str:
    text = (value or "").strip()
    if not text or len(text) > MAX_CARD_TEXT_LENGTH:
        raise InvalidCardContent(field_name, operation=operation)
    return text


class CardService:
    def __init__(self, db: Session):
        self.db = db
        self.scopes = ScopeProvider(db)
        self.resolver = IdentityResolver(db)

    def create_manual_card(
        self,
        scope_id: int,
        question: str,
        answer: str,
        language: str | None = None,
    ) -> ContentUnit:
        """Create a base card tagged as manually authored.

        Cards are stored in the scope's base language; a different *language*
        is accepted only if it normalises to that same code.
        """

        scope = self.scopes.get_scope(scope_id, operation="create_manual_card")
        card_language = normalize_language(language, fallback=scope.base_language)
        if card_language != scope.base_language:
            raise InvalidCardContent("language", operation="create_manual_card")

        unit = ContentUnit(
            scope_id=scope.id,
            language=card_language,
            question=_clean_text(question, "question", "create_manual_card"),
            answer=_clean_text(answer, "answer", "create_manual_card"),
            is_manually_authored=True,
        )
        self.db.add(unit)
        self.db.commit()
        logger.info("Carte manuelle %s créée dans le scope %s", unit.id, scope.id)
        return unit

    def delete_card(self, content_unit_id: int) -> List[int]:
        """Delete the base card behind *content_unit_id* with all its variants and progress.

        Returns the ids of every deleted unit.
        """

        base_id = self.resolver.require_base(content_unit_id, operation="delete_card")
        variant_ids = list(
            self.db.execute(
                select(TranslationMapping.variant_id).where(TranslationMapping.base_id == base_id)
            ).scalars()
        )
        group_ids = [base_id, *variant_ids]

        self.db.execute(delete(AttemptEvent).where(AttemptEvent.base_content_unit_id == base_id))
        self.db.execute(delete(ScheduleState).where(ScheduleState.base_content_unit_id == base_id))
        self.db.execute(delete(TranslationMapping).where(TranslationMapping.base_id == base_id))
        self.db.execute(
            delete(ContentUnit)
            .where(ContentUnit.id.in_(group_ids))
            .execution_options(synchronize_session="fetch")
        )
        self.db.commit()

        logger.info("Carte %s supprimée avec %s variante(s)", base_id, len(variant_ids))
        return group_ids


__all__ = ["CardService"]
