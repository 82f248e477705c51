"""Due-set aggregation: which cards a learner should review now, in which language."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from flashsync.core.errors import TranslationUnavailable
from flashsync.core.languages import normalize_language
from flashsync.core.translation_client import Translator
from flashsync.models.content_unit_model import ContentUnit
from flashsync.models.schedule_state_model import ScheduleState
from flashsync.services.identity_resolver import IdentityResolver
from flashsync.services.scope_provider import ScopeProvider
from flashsync.services.translation_cache import TranslationCache
from flashsync.utils.time_utils import as_naive_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ScheduleSnapshot:
    is_new: bool
    is_due: bool
    next_review_date: datetime | None = None
    interval_days: int = 0
    repetitions: int = 0
    ease_factor: float | None = None
    last_attempt_at: datetime | None = None


@dataclass
class CardView:
    """A card as served to the client.

    ``id`` is the id of the language variant actually shown; the client sends
    it back when rating and the server resolves it to ``base_id`` again.
    """

    id: int
    base_id: int
    scope_id: int
    language: str
    question: str
    answer: str
    is_manually_authored: bool
    schedule: ScheduleSnapshot


@dataclass
class DueSet:
    cards: List[CardView]
    next_available_at: datetime | None
    total_cards: int
    language: str | None
    degraded: bool = False


@dataclass
class BundledCard:
    base_id: int
    scope_id: int
    base_language: str
    variants: Dict[str, CardView] = field(default_factory=dict)
    schedule: ScheduleSnapshot | None = None


def is_due(state: ScheduleState | None, now: datetime) -> bool:
    """New cards and cards whose review date has passed are due."""

    if state is None or state.next_review_date is None:
        return True
    return state.next_review_date <= now


def snapshot_of(state: ScheduleState | None, now: datetime) -> ScheduleSnapshot:
    if state is None:
        return ScheduleSnapshot(is_new=True, is_due=True)
    return ScheduleSnapshot(
        is_new=state.next_review_date is None,
        is_due=is_due(state, now),
        next_review_date=state.next_review_date,
        interval_days=state.interval_days,
        repetitions=state.repetitions,
        ease_factor=state.ease_factor,
        last_attempt_at=state.last_attempt_at,
    )


def next_available_at(states: Iterable[ScheduleState | None], now: datetime) -> datetime | None:
    """Earliest future review date among scheduled cards, ``None`` if there is none."""

    upcoming = [
        state.next_review_date
        for state in states
        if state is not None and state.next_review_date is not None and state.next_review_date > now
    ]
    return min(upcoming) if upcoming else None


class DueSetService:
    def __init__(self, db: Session, translator: Translator):
        self.db = db
        self.resolver = IdentityResolver(db)
        self.scopes = ScopeProvider(db)
        self.cache = TranslationCache(db, translator, resolver=self.resolver)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def compute_due_set(
        self,
        learner_id: str,
        scope_id: int,
        language: str | None,
        now: datetime | None = None,
        fallback_to_base: bool = False,
    ) -> DueSet:
        """Cards currently due for *learner_id* in *scope_id*, in *language*."""

        now = as_naive_utc(now) or utcnow()
        cards, states, served_language, degraded = self._collect(
            learner_id, scope_id, language, now, fallback_to_base
        )
        due_cards = [card for card in cards if card.schedule.is_due]
        logger.info(
            "Due set: learner=%s scope=%s langue=%s -> %s/%s carte(s) dues",
            learner_id,
            scope_id,
            served_language,
            len(due_cards),
            len(cards),
        )
        return DueSet(
            cards=due_cards,
            next_available_at=next_available_at(states, now),
            total_cards=len(cards),
            language=served_language,
            degraded=degraded,
        )

    def compute_all_set(
        self,
        learner_id: str,
        scope_id: int,
        language: str | None,
        now: datetime | None = None,
        fallback_to_base: bool = False,
    ) -> DueSet:
        """Practice mode: every card of the scope, regardless of schedule."""

        now = as_naive_utc(now) or utcnow()
        cards, states, served_language, degraded = self._collect(
            learner_id, scope_id, language, now, fallback_to_base
        )
        return DueSet(
            cards=cards,
            next_available_at=next_available_at(states, now),
            total_cards=len(cards),
            language=served_language,
            degraded=degraded,
        )

    def compute_bundle(
        self, learner_id: str, scope_id: int, now: datetime | None = None
    ) -> List[BundledCard]:
        """Every known language variant per base card plus its schedule.

        Nothing is translated here; clients switch between the languages that
        already exist without another round trip.
        """

        now = as_naive_utc(now) or utcnow()
        bases = self._unique_bases(self.scopes.list_base_units(scope_id))
        base_ids = [base.id for base in bases]
        variants = self.cache.variants_for(base_ids)
        states = self._load_states(learner_id, base_ids)

        bundle: List[BundledCard] = []
        for base in bases:
            state = states.get(base.id)
            schedule = snapshot_of(state, now)
            entry = BundledCard(
                base_id=base.id,
                scope_id=base.scope_id,
                base_language=base.language,
                schedule=schedule,
            )
            for unit in [base, *variants.get(base.id, [])]:
                entry.variants[unit.language] = self._to_view(unit, base.id, schedule)
            bundle.append(entry)
        return bundle

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _collect(
        self,
        learner_id: str,
        scope_id: int,
        language: str | None,
        now: datetime,
        fallback_to_base: bool,
    ) -> tuple[List[CardView], List[ScheduleState | None], str | None, bool]:
        bases = self._unique_bases(self.scopes.list_base_units(scope_id))
        target = normalize_language(language) if language else None
        degraded = False

        try:
            variants = self._variants(bases, target)
        except TranslationUnavailable as exc:
            if not fallback_to_base:
                raise
            logger.warning(
                "Traduction indisponible pour le scope %s (%s), cartes servies dans la langue de base.",
                scope_id,
                exc,
            )
            variants = list(bases)
            target = None
            degraded = True

        # Progress is keyed by the canonical id, whatever language is shown.
        variant_to_base = self.resolver.resolve_many(variant.id for variant in variants)
        states = self._load_states(learner_id, variant_to_base.values())

        cards: List[CardView] = []
        card_states: List[ScheduleState | None] = []
        for variant in variants:
            base_id = variant_to_base[variant.id]
            state = states.get(base_id)
            card_states.append(state)
            cards.append(self._to_view(variant, base_id, snapshot_of(state, now)))
        return cards, card_states, target, degraded

    def _variants(self, bases: Sequence[ContentUnit], language: str | None) -> List[ContentUnit]:
        if language is None:
            return list(bases)
        return self.cache.get_or_create_many(bases, language)

    def _unique_bases(self, units: Sequence[ContentUnit]) -> List[ContentUnit]:
        """De-duplicate by base id, keeping the first occurrence's position."""

        resolved = self.resolver.resolve_many(unit.id for unit in units)
        unique: "OrderedDict[int, ContentUnit]" = OrderedDict()
        for unit in units:
            base_id = resolved[unit.id]
            if base_id in unique:
                continue
            unique[base_id] = unit if base_id == unit.id else self.resolver.require_unit(base_id)
        return list(unique.values())

    def _load_states(self, learner_id: str, base_ids: Iterable[int]) -> Dict[int, ScheduleState]:
        ids = list(set(base_ids))
        if not ids:
            return {}
        rows = self.db.execute(
            select(ScheduleState).where(
                ScheduleState.learner_id == learner_id,
                ScheduleState.base_content_unit_id.in_(ids),
            )
        ).scalars().all()
        return {state.base_content_unit_id: state for state in rows}

    @staticmethod
    def _to_view(unit: ContentUnit, base_id: int, schedule: ScheduleSnapshot) -> CardView:
        return CardView(
            id=unit.id,
            base_id=base_id,
            scope_id=unit.scope_id,
            language=unit.language,
            question=unit.question,
            answer=unit.answer,
            is_manually_authored=unit.is_manually_authored,
            schedule=schedule,
        )


__all__ = [
    "BundledCard",
    "CardView",
    "DueSet",
    "DueSetService",
    "ScheduleSnapshot",
    "is_due",
    "next_available_at",
]
