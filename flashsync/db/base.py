"""Registers every SQLAlchemy model on ``Base.metadata``."""

from flashsync.db.base_class import Base

from flashsync.models.study_scope_model import StudyScope
from flashsync.models.content_unit_model import ContentUnit
from flashsync.models.translation_mapping_model import TranslationMapping
from flashsync.models.schedule_state_model import ScheduleState
from flashsync.models.attempt_event_model import AttemptEvent

__all__ = (
    "Base",
    "StudyScope",
    "ContentUnit",
    "TranslationMapping",
    "ScheduleState",
    "AttemptEvent",
)
