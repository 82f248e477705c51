import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from flashsync.api.v2.dependencies import get_current_learner_id, get_db
from flashsync.core.errors import FlashSyncError
from flashsync.core.languages import base_language, normalize_language
from flashsync.schemas.scope_schema import ScopeCreate, ScopeDetailOut, ScopeOut
from flashsync.services.scope_provider import ScopeProvider

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=ScopeOut, status_code=status.HTTP_201_CREATED, summary="Créer un scope")
def create_scope(
    payload: ScopeCreate,
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),  # noqa: ARG001 - authentication only
) -> ScopeOut:
    provider = ScopeProvider(db)
    language = normalize_language(payload.base_language, fallback=base_language())
    try:
        scope = provider.create_scope(payload.title, language, parent_id=payload.parent_id)
    except FlashSyncError as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc
    db.commit()
    db.refresh(scope)
    logger.info("Scope %s créé (langue de base: %s)", scope.id, scope.base_language)
    return ScopeOut.model_validate(scope)


@router.get("/{scope_id}", response_model=ScopeDetailOut, summary="Détail d'un scope")
def get_scope(
    scope_id: int,
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),  # noqa: ARG001 - authentication only
) -> ScopeDetailOut:
    provider = ScopeProvider(db)
    try:
        scope = provider.get_scope(scope_id, operation="get_scope")
        scope_ids = provider.collect_scope_ids(scope_id)
        base_units = provider.list_base_units(scope_id)
        manual_units = provider.list_manual_units(scope_id)
    except FlashSyncError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc

    payload = ScopeOut.model_validate(scope).model_dump()
    return ScopeDetailOut(
        **payload,
        sub_scope_ids=scope_ids[1:],
        base_card_count=len(base_units),
        manual_card_count=len(manual_units),
    )
