"""Pydantic schemas for the card scheduling endpoints."""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScheduleSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_new: bool
    is_due: bool
    next_review_date: Optional[datetime] = None
    interval_days: int = 0
    repetitions: int = 0
    ease_factor: Optional[float] = None
    last_attempt_at: Optional[datetime] = None


class CardOut(BaseModel):
    """A card in the requested language; ``id`` is what the client rates."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    base_id: int
    scope_id: int
    language: str
    question: str
    answer: str
    is_manually_authored: bool
    schedule: ScheduleSnapshotOut


class DueSetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cards: List[CardOut] = Field(default_factory=list)
    next_available_at: Optional[datetime] = None
    total_cards: int
    language: Optional[str] = None
    degraded: bool = False


class BundledCardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    base_id: int
    scope_id: int
    base_language: str
    variants: Dict[str, CardOut] = Field(default_factory=dict)
    schedule: Optional[ScheduleSnapshotOut] = None


class BundleOut(BaseModel):
    scope_id: int
    cards: List[BundledCardOut] = Field(default_factory=list)


class AttemptIn(BaseModel):
    rating: int


class AttemptOut(BaseModel):
    """Nouvel état de planification renvoyé après une réponse."""

    model_config = ConfigDict(from_attributes=True)

    base_content_unit_id: int
    next_review_date: datetime
    interval_days: int
    repetitions: int
    ease_factor: float


class ScheduleStateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    base_content_unit_id: int
    ease_factor: float
    interval_days: int
    repetitions: int
    last_attempt_at: Optional[datetime] = None
    next_review_date: Optional[datetime] = None


class ManualCardIn(BaseModel):
    scope_id: int
    question: str
    answer: str
    language: Optional[str] = None


class ContentUnitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scope_id: int
    language: str
    question: str
    answer: str
    is_manually_authored: bool
    created_at: Optional[datetime] = None


class DeletedCardsOut(BaseModel):
    status: str = "deleted"
    deleted_ids: List[int]


class AttemptEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    base_content_unit_id: int
    rating: int
    attempt_at: datetime
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_date: datetime
