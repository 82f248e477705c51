from .study_scope_model import StudyScope
from .content_unit_model import ContentUnit
from .translation_mapping_model import TranslationMapping
from .schedule_state_model import ScheduleState
from .attempt_event_model import AttemptEvent

__all__ = ["StudyScope", "ContentUnit", "TranslationMapping", "ScheduleState", "AttemptEvent"]
