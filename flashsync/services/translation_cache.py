"""Get-or-create cache of translated card variants.

The ``translation_mappings`` table is the cache. A miss calls the external
translator first, with no write pending on the session, and only then
persists the new unit and its mapping in one short unit of work. Two
requests racing on the same ``(base_id, target_language)`` pair are
arbitrated by the unique constraint: the loser rolls back its duplicate and
reads the winner's row.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flashsync.core.errors import InconsistentTranslationCount, MappingConflict, NotFound
from flashsync.core.languages import normalize_language
from flashsync.core.translation_client import CardText, Translator
from flashsync.models.content_unit_model import ContentUnit
from flashsync.models.translation_mapping_model import TranslationMapping
from flashsync.services.identity_resolver import IdentityResolver

logger = logging.getLogger(__name__)


class TranslationCache:
    """Sole writer of ``TranslationMapping`` rows and of variant units."""

    def __init__(self, db: Session, translator: Translator, resolver: IdentityResolver | None = None):
        self.db = db
        self.translator = translator
        self.resolver = resolver or IdentityResolver(db)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get_or_create(self, base: ContentUnit, target_language: str) -> ContentUnit:
        """Return the *target_language* variant of *base*, creating it on a miss."""

        return self.get_or_create_many([base], target_language)[0]

    def get_or_create_many(
        self, bases: Sequence[ContentUnit], target_language: str
    ) -> List[ContentUnit]:
        """Variants for *bases*, in input order.

        Only bases without a cached mapping are sent to the translator, in a
        single batch per source language.
        """

        language = normalize_language(target_language)
        canonical = self._canonical_bases(bases)

        results: List[ContentUnit | None] = [None] * len(canonical)
        lookup_ids: List[int] = []
        for index, base in enumerate(canonical):
            if base.language == language:
                results[index] = base
            else:
                lookup_ids.append(base.id)

        cached = self._load_variants(lookup_ids, language)

        # Missing bases grouped by source language, each base translated once
        # even if it appears several times in the input.
        missing: Dict[str, "OrderedDict[int, ContentUnit]"] = {}
        for index, base in enumerate(canonical):
            if results[index] is not None:
                continue
            variant = cached.get(base.id)
            if variant is not None:
                results[index] = variant
            else:
                missing.setdefault(base.language, OrderedDict())[base.id] = base

        if cached:
            logger.debug("Cache de traduction: %s hit(s) pour la langue %s", len(cached), language)

        for source_language, group in missing.items():
            created = self._translate_and_persist(list(group.values()), source_language, language)
            cached.update(created)

        for index, base in enumerate(canonical):
            if results[index] is None:
                results[index] = cached[base.id]

        return results  # type: ignore[return-value]

    def variants_for(self, base_ids: Sequence[int]) -> Dict[int, List[ContentUnit]]:
        """All known variants per base id (no generation)."""

        variants: Dict[int, List[ContentUnit]] = {base_id: [] for base_id in base_ids}
        if not base_ids:
            return variants
        rows = self.db.execute(
            select(TranslationMapping.base_id, ContentUnit)
            .join(ContentUnit, ContentUnit.id == TranslationMapping.variant_id)
            .where(TranslationMapping.base_id.in_(list(base_ids)))
            .order_by(TranslationMapping.base_id, ContentUnit.language)
        ).all()
        for base_id, unit in rows:
            variants[base_id].append(unit)
        return variants

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _canonical_bases(self, units: Sequence[ContentUnit]) -> List[ContentUnit]:
        """Swap any variant passed in by mistake for its base unit."""

        resolved = self.resolver.resolve_many(unit.id for unit in units)
        canonical: List[ContentUnit] = []
        for unit in units:
            base_id = resolved.get(unit.id, unit.id)
            if base_id == unit.id:
                canonical.append(unit)
            else:
                canonical.append(self.resolver.require_unit(base_id, operation="get_or_create"))
        return canonical

    def _load_variants(self, base_ids: Sequence[int], language: str) -> Dict[int, ContentUnit]:
        if not base_ids:
            return {}
        rows = self.db.execute(
            select(TranslationMapping.base_id, ContentUnit)
            .join(ContentUnit, ContentUnit.id == TranslationMapping.variant_id)
            .where(
                TranslationMapping.base_id.in_(list(base_ids)),
                TranslationMapping.target_language == language,
            )
        ).all()
        return {base_id: unit for base_id, unit in rows}

    def _translate_and_persist(
        self,
        bases: List[ContentUnit],
        source_language: str,
        target_language: str,
    ) -> Dict[int, ContentUnit]:
        # Plain values only: a rollback further down expires the ORM objects.
        snapshots = [
            (base.id, base.scope_id, base.is_manually_authored, CardText(base.question, base.answer))
            for base in bases
        ]

        logger.info(
            "Cache de traduction: %s carte(s) à traduire (%s -> %s)",
            len(snapshots),
            source_language,
            target_language,
        )
        translated = self.translator.translate_many(
            [snapshot[3] for snapshot in snapshots], source_language, target_language
        )
        if len(translated) != len(snapshots):
            logger.error(
                "Traduction incohérente: %s cartes reçues, %s attendues.",
                len(translated),
                len(snapshots),
            )
            raise InconsistentTranslationCount(expected=len(snapshots), received=len(translated))

        created: Dict[int, ContentUnit] = {}
        for (base_id, scope_id, is_manual, _), text in zip(snapshots, translated):
            try:
                created[base_id] = self._insert_variant(
                    base_id, scope_id, is_manual, target_language, text
                )
            except MappingConflict as conflict:
                created[base_id] = self._read_winner(conflict)
        return created

    def _insert_variant(
        self,
        base_id: int,
        scope_id: int,
        is_manual: bool,
        target_language: str,
        text: CardText,
    ) -> ContentUnit:
        variant = ContentUnit(
            scope_id=scope_id,
            language=target_language,
            question=text.question,
            answer=text.answer,
            is_manually_authored=is_manual,
        )
        mapping = TranslationMapping(
            base_id=base_id,
            target_language=target_language,
            variant=variant,
        )
        self.db.add_all([variant, mapping])
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if self._load_variants([base_id], target_language).get(base_id) is None:
                # Not a duplicate mapping: the base itself vanished or another constraint failed.
                if self.db.get(ContentUnit, base_id) is None:
                    raise NotFound("content_unit", base_id, operation="get_or_create") from exc
                raise
            raise MappingConflict(base_id, target_language) from exc

        logger.info(
            "Variante %s créée pour la carte %s (%s)", variant.id, base_id, target_language
        )
        return variant

    def _read_winner(self, conflict: MappingConflict) -> ContentUnit:
        logger.info(
            "Conflit de traduction résolu pour la carte %s (%s): variante existante réutilisée.",
            conflict.base_id,
            conflict.target_language,
        )
        return self._load_variants([conflict.base_id], conflict.target_language)[conflict.base_id]


__all__ = ["TranslationCache"]
