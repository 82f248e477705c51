"""Recording of review attempts against the canonical card identity."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from flashsync.core.config import settings
from flashsync.core.errors import ScheduleConflict
from flashsync.models.attempt_event_model import AttemptEvent
from flashsync.models.schedule_state_model import ScheduleState
from flashsync.services.identity_resolver import IdentityResolver
from flashsync.services.scheduler import advance, validate_rating

logger = logging.getLogger(__name__)


class AttemptRecorder:
    """Sole writer of ``ScheduleState`` and ``AttemptEvent`` rows.

    Transitions for the same learner and card are serialised: the prior state
    is read under a row lock where the backend supports it, and the update is
    guarded by the ``version`` counter. A writer that loses the race rolls
    back, re-reads the committed state and recomputes from it.
    """

    def __init__(self, db: Session, max_retries: int | None = None):
        self.db = db
        self.resolver = IdentityResolver(db)
        self.max_retries = (
            settings.SCHEDULE_WRITE_MAX_RETRIES if max_retries is None else max(0, max_retries)
        )

    # ------------------------------------------------------------------
    # Core update operation
    # ------------------------------------------------------------------
    def record_attempt(
        self,
        learner_id: str,
        content_unit_id: int,
        rating: int,
        now: datetime | None = None,
    ) -> ScheduleState:
        """Apply *rating* to the learner's schedule for the card behind *content_unit_id*.

        *content_unit_id* may be any language variant; the state written is
        always keyed by the base card.
        """

        rating = validate_rating(rating)
        base_id = self.resolver.require_base(content_unit_id, operation="record_attempt")

        attempt = 0
        while True:
            attempt += 1
            try:
                state = self._apply(learner_id, base_id, rating, now)
                self.db.commit()
            except (StaleDataError, IntegrityError) as exc:
                self.db.rollback()
                if attempt > self.max_retries:
                    logger.error(
                        "Conflit de planification persistant: learner=%s carte=%s (%s tentatives)",
                        learner_id,
                        base_id,
                        attempt,
                    )
                    raise ScheduleConflict(learner_id, base_id, attempt) from exc
                logger.warning(
                    "Écriture concurrente détectée pour learner=%s carte=%s, nouvel essai (%s/%s)",
                    learner_id,
                    base_id,
                    attempt,
                    self.max_retries,
                )
                continue

            logger.info(
                "Tentative enregistrée: learner=%s carte=%s note=%s -> intervalle=%sj",
                learner_id,
                base_id,
                rating,
                state.interval_days,
            )
            return state

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------
    def get_state(self, learner_id: str, content_unit_id: int) -> ScheduleState | None:
        """Current state for any language variant of a card."""

        base_id = self.resolver.require_base(content_unit_id, operation="get_state")
        return self._load_state(learner_id, base_id, lock=False)

    def history(self, learner_id: str, content_unit_id: int, limit: int = 20) -> List[AttemptEvent]:
        base_id = self.resolver.require_base(content_unit_id, operation="history")
        return list(
            self.db.execute(
                select(AttemptEvent)
                .where(
                    AttemptEvent.learner_id == learner_id,
                    AttemptEvent.base_content_unit_id == base_id,
                )
                .order_by(AttemptEvent.attempt_at.desc(), AttemptEvent.id.desc())
                .limit(limit)
            ).scalars()
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load_state(self, learner_id: str, base_id: int, lock: bool) -> ScheduleState | None:
        query = select(ScheduleState).where(
            ScheduleState.learner_id == learner_id,
            ScheduleState.base_content_unit_id == base_id,
        )
        if lock:
            # Fresh values from the locked row, not whatever the identity map holds.
            query = query.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(query).scalar_one_or_none()

    def _apply(
        self, learner_id: str, base_id: int, rating: int, now: datetime | None
    ) -> ScheduleState:
        prior = self._load_state(learner_id, base_id, lock=True)
        result = advance(rating, prior, now)

        if prior is None:
            state = ScheduleState(learner_id=learner_id, base_content_unit_id=base_id)
            self.db.add(state)
        else:
            state = prior

        state.ease_factor = result.ease_factor
        state.interval_days = result.interval_days
        state.repetitions = result.repetitions
        state.last_attempt_at = result.attempted_at
        state.next_review_date = result.next_review_date

        self.db.add(
            AttemptEvent(
                learner_id=learner_id,
                base_content_unit_id=base_id,
                rating=rating,
                attempt_at=result.attempted_at,
                ease_factor=result.ease_factor,
                interval_days=result.interval_days,
                repetitions=result.repetitions,
                next_review_date=result.next_review_date,
            )
        )
        self.db.flush()
        return state


__all__ = ["AttemptRecorder"]
