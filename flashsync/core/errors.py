"""Domain exceptions shared by the scheduling and translation services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(eq=False)
class FlashSyncError(Exception):
    """Base error carrying a machine readable ``code`` and request context.

    ``operation`` names the service call that failed and ``context`` holds the
    identifiers involved, so the caller can decide whether to retry, degrade or
    show an error.
    """

    code: str
    status_code: int = 400
    operation: str | None = None
    context: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [self.code]
        if self.operation:
            parts.append(f"operation={self.operation}")
        for key, value in self.context.items():
            parts.append(f"{key}={value}")
        return " ".join(parts)


class InvalidRating(FlashSyncError):
    def __init__(self, rating: Any, operation: str | None = "advance"):
        super().__init__(
            "invalid_rating",
            status_code=422,
            operation=operation,
            context={"rating": rating},
        )


class InvalidCardContent(FlashSyncError):
    def __init__(self, field_name: str, operation: str | None = None):
        super().__init__(
            "invalid_card_content",
            status_code=422,
            operation=operation,
            context={"field": field_name},
        )


class NotFound(FlashSyncError):
    def __init__(self, resource: str, identifier: Any, operation: str | None = None):
        super().__init__(
            f"{resource}_not_found",
            status_code=404,
            operation=operation,
            context={"id": identifier},
        )


class TranslationUnavailable(FlashSyncError):
    """The text-generation call failed or timed out; nothing was persisted."""

    def __init__(
        self,
        reason: str,
        operation: str | None = "translate",
        code: str = "translation_unavailable",
        **context: Any,
    ):
        super().__init__(
            code,
            status_code=503,
            operation=operation,
            context={"reason": reason, **context},
        )


class InconsistentTranslationCount(TranslationUnavailable):
    """A batched translation returned a different number of items."""

    def __init__(self, expected: int, received: int, operation: str | None = "translate_many"):
        super().__init__(
            "inconsistent_translation_count",
            operation=operation,
            code="inconsistent_translation_count",
            expected=expected,
            received=received,
        )
        self.expected = expected
        self.received = received


class MappingConflict(FlashSyncError):
    """Two cache misses raced on the same (base, language) pair.

    Recovered inside the translation cache, never returned to API callers.
    """

    def __init__(self, base_id: int, target_language: str):
        super().__init__(
            "mapping_conflict",
            status_code=409,
            operation="get_or_create",
            context={"base_id": base_id, "target_language": target_language},
        )
        self.base_id = base_id
        self.target_language = target_language


class ScheduleConflict(FlashSyncError):
    """Concurrent attempts kept invalidating the prior state beyond the retry budget."""

    def __init__(self, learner_id: str, base_id: int, attempts: int):
        super().__init__(
            "schedule_conflict",
            status_code=409,
            operation="record_attempt",
            context={"learner_id": learner_id, "base_id": base_id, "attempts": attempts},
        )


__all__ = [
    "FlashSyncError",
    "InvalidRating",
    "InvalidCardContent",
    "NotFound",
    "TranslationUnavailable",
    "InconsistentTranslationCount",
    "MappingConflict",
    "ScheduleConflict",
]
