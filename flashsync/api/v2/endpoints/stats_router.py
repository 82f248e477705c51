from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from flashsync.api.v2.dependencies import get_current_learner_id, get_db
from flashsync.schemas.scope_schema import DailyMetricOut, StatsOverviewOut
from flashsync.services.stats_service import StatsService

router = APIRouter()


@router.get("/overview", response_model=StatsOverviewOut, summary="Vue d'ensemble de l'apprenant")
def get_overview(
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),
) -> StatsOverviewOut:
    return StatsOverviewOut.model_validate(StatsService(db, learner_id).overview())


@router.get("/daily", response_model=List[DailyMetricOut], summary="Activité quotidienne")
def get_daily_metrics(
    days: int = Query(default=7, ge=1, le=90),
    db: Session = Depends(get_db),
    learner_id: str = Depends(get_current_learner_id),
) -> List[DailyMetricOut]:
    metrics = StatsService(db, learner_id).daily_metrics(days)
    return [DailyMetricOut.model_validate(entry) for entry in metrics]
