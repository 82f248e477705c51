"""Schemas for study scopes and statistics."""
from datetime import date as date_type, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScopeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    base_language: Optional[str] = None
    parent_id: Optional[int] = None


class ScopeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    parent_id: Optional[int] = None
    base_language: str
    created_at: Optional[datetime] = None


class ScopeDetailOut(ScopeOut):
    sub_scope_ids: List[int] = Field(default_factory=list)
    base_card_count: int = 0
    manual_card_count: int = 0


class DailyMetricOut(BaseModel):
    date: date_type
    attempts: int
    correct: int
    incorrect: int
    accuracy: float


class StatsOverviewOut(BaseModel):
    total_attempts: int
    average_accuracy: float
    cards_studied: int
    due_now: int
    study_streak: int
    retention_7_days: Optional[float] = None
    retention_30_days: Optional[float] = None
    recent_days: List[DailyMetricOut] = Field(default_factory=list)
