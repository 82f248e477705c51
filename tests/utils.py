"""Utility helpers for test factories."""

from __future__ import annotations

from typing import Callable, List, Sequence

from flashsync.core.errors import TranslationUnavailable
from flashsync.core.translation_client import CardText
from flashsync.models.content_unit_model import ContentUnit
from flashsync.models.study_scope_model import StudyScope


def create_scope(db, **kwargs) -> StudyScope:
    defaults = {
        "title": "Biologia celular",
        "base_language": "pt",
        "parent_id": None,
    }
    defaults.update(kwargs)
    scope = StudyScope(**defaults)
    db.add(scope)
    db.commit()
    db.refresh(scope)
    return scope


def create_card(db, scope: StudyScope, **kwargs) -> ContentUnit:
    defaults = {
        "scope_id": scope.id,
        "language": scope.base_language,
        "question": "O que é a mitocôndria?",
        "answer": "A organela que produz energia.",
        "is_manually_authored": False,
    }
    defaults.update(kwargs)
    unit = ContentUnit(**defaults)
    db.add(unit)
    db.commit()
    db.refresh(unit)
    return unit


def create_cards(db, scope: StudyScope, count: int) -> List[ContentUnit]:
    return [
        create_card(db, scope, question=f"Pergunta {index}", answer=f"Resposta {index}")
        for index in range(1, count + 1)
    ]


class FakeTranslator:
    """In-memory ``Translator`` recording every batch it receives."""

    def __init__(
        self,
        fail: bool = False,
        drop_last: bool = False,
        on_call: Callable[[Sequence[CardText], str, str], None] | None = None,
    ):
        self.fail = fail
        self.drop_last = drop_last
        self.on_call = on_call
        self.calls: List[tuple[List[CardText], str, str]] = []

    def translate(self, text: str, source_language: str, target_language: str) -> str:
        if self.fail:
            raise TranslationUnavailable("timeout", operation="translate")
        return f"[{target_language}] {text}"

    def translate_many(
        self,
        items: Sequence[CardText],
        source_language: str,
        target_language: str,
    ) -> List[CardText]:
        self.calls.append((list(items), source_language, target_language))
        if self.on_call is not None:
            hook, self.on_call = self.on_call, None
            hook(items, source_language, target_language)
        if self.fail:
            raise TranslationUnavailable("timeout", operation="translate_many")

        translated = [
            CardText(
                question=f"[{target_language}] {item.question}",
                answer=f"[{target_language}] {item.answer}",
            )
            for item in items
        ]
        if self.drop_last:
            translated = translated[:-1]
        return translated

    @property
    def translated_questions(self) -> List[str]:
        return [item.question for items, _, _ in self.calls for item in items]
