"""Endpoints de révision: due set, mode pratique, réponses et cartes manuelles."""
from dataclasses import asdict
from typing import List, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from flashsync.api.v2.dependencies import get_current_learner_id, get_db
from flashsync.core.errors import FlashSyncError
from flashsync.core.translation_client import Translator, get_translator
from flashsync.schemas.card_schema import (
    AttemptEventOut,
    AttemptIn,
    AttemptOut,
    BundleOut,
    ContentUnitOut,
    DeletedCardsOut,
    DueSetOut,
    ManualCardIn,
    ScheduleStateOut,
)
from flashsync.services.attempt_recorder import AttemptRecorder
from flashsync.services.card_service import CardService
from flashsync.services.due_set_service import DueSetService

router = APIRouter()


def _raise_http(exc: FlashSyncError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc


@router.get("/scopes/{scope_id}/due", response_model=DueSetOut, summary="Cartes à réviser maintenant")
def get_due_cards(
    scope_id: int,
    language: str | None = Query(default=None, max_length=16),
    fallback: bool = Query(default=False, description="Serve base-language text if translation fails"),
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),
    translator: Translator = Depends(get_translator),
) -> DueSetOut:
    """Cards due for review, in *language*, plus the time the next card becomes due."""
    service = DueSetService(db=db, translator=translator)
    try:
        due_set = service.compute_due_set(learner_id, scope_id, language, fallback_to_base=fallback)
    except FlashSyncError as exc:
        _raise_http(exc)
    return DueSetOut.model_validate(asdict(due_set))


@router.get("/scopes/{scope_id}/all", response_model=DueSetOut, summary="Toutes les cartes (mode pratique)")
def get_all_cards(
    scope_id: int,
    language: str | None = Query(default=None, max_length=16),
    fallback: bool = Query(default=False),
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),
    translator: Translator = Depends(get_translator),
) -> DueSetOut:
    service = DueSetService(db=db, translator=translator)
    try:
        all_set = service.compute_all_set(learner_id, scope_id, language, fallback_to_base=fallback)
    except FlashSyncError as exc:
        _raise_http(exc)
    return DueSetOut.model_validate(asdict(all_set))


@router.get("/scopes/{scope_id}/bundled", response_model=BundleOut, summary="Toutes les langues connues")
def get_bundled_cards(
    scope_id: int,
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),
    translator: Translator = Depends(get_translator),
) -> BundleOut:
    """Every known language variant per card with the learner's schedule; never translates."""
    service = DueSetService(db=db, translator=translator)
    try:
        bundle = service.compute_bundle(learner_id, scope_id)
    except FlashSyncError as exc:
        _raise_http(exc)
    return BundleOut.model_validate({"scope_id": scope_id, "cards": [asdict(entry) for entry in bundle]})


@router.post("/{content_unit_id}/attempt", response_model=AttemptOut, summary="Enregistrer une réponse")
def submit_attempt(
    content_unit_id: int,
    payload: AttemptIn,
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),
) -> AttemptOut:
    """Rate a card in any language; progress is shared by all its translations."""
    recorder = AttemptRecorder(db=db)
    try:
        state = recorder.record_attempt(learner_id, content_unit_id, payload.rating)
    except FlashSyncError as exc:
        _raise_http(exc)
    return AttemptOut.model_validate(state)


@router.get("/{content_unit_id}/schedule", response_model=ScheduleStateOut | None, summary="État de planification")
def get_card_schedule(
    content_unit_id: int,
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),
) -> ScheduleStateOut | None:
    recorder = AttemptRecorder(db=db)
    try:
        state = recorder.get_state(learner_id, content_unit_id)
    except FlashSyncError as exc:
        _raise_http(exc)
    return ScheduleStateOut.model_validate(state) if state else None


@router.get("/{content_unit_id}/history", response_model=List[AttemptEventOut], summary="Historique des réponses")
def get_card_history(
    content_unit_id: int,
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),
) -> List[AttemptEventOut]:
    """Latest attempts first; any language variant of the card returns the same history."""
    recorder = AttemptRecorder(db=db)
    try:
        events = recorder.history(learner_id, content_unit_id, limit=limit)
    except FlashSyncError as exc:
        _raise_http(exc)
    return [AttemptEventOut.model_validate(event) for event in events]


@router.post("/manual", response_model=ContentUnitOut, status_code=status.HTTP_201_CREATED, summary="Créer une carte manuelle")
def create_manual_card(
    payload: ManualCardIn,
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),  # noqa: ARG001 - authentication only
) -> ContentUnitOut:
    service = CardService(db=db)
    try:
        unit = service.create_manual_card(
            payload.scope_id, payload.question, payload.answer, payload.language
        )
    except FlashSyncError as exc:
        _raise_http(exc)
    return ContentUnitOut.model_validate(unit)


@router.delete("/{content_unit_id}", response_model=DeletedCardsOut, summary="Supprimer une carte et ses traductions")
def delete_card(
    content_unit_id: int,
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),  # noqa: ARG001 - authentication only
) -> DeletedCardsOut:
    service = CardService(db=db)
    try:
        deleted = service.delete_card(content_unit_id)
    except FlashSyncError as exc:
        _raise_http(exc)
    return DeletedCardsOut(deleted_ids=deleted)
