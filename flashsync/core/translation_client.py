"""Text-generation collaborator used by the translation cache.

The cache only depends on the ``Translator`` protocol; ``OpenAITranslator``
is the production implementation. Calls are bounded by
``TRANSLATION_TIMEOUT_SECONDS`` and are never retried here: retry policy
belongs to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Protocol, Sequence

from openai import OpenAI, OpenAIError

from flashsync.core.config import settings
from flashsync.core.errors import InconsistentTranslationCount, TranslationUnavailable
from flashsync.core.languages import language_name
from flashsync.utils.json_utils import load_json_object

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CardText:
    question: str
    answer: str


class Translator(Protocol):
    def translate(self, text: str, source_language: str, target_language: str) -> str:
        ...

    def translate_many(
        self,
        items: Sequence[CardText],
        source_language: str,
        target_language: str,
    ) -> List[CardText]:
        ...


TEXT_SYSTEM_PROMPT = (
    "You are a professional translator. Always respond with valid JSON only, no additional text."
)
CARDS_SYSTEM_PROMPT = (
    "You are a professional translator specializing in educational content. "
    "Always respond with valid JSON only."
)


def build_text_prompt(text: str, source_language: str, target_language: str) -> str:
    return (
        f"Translate the following study text from {language_name(source_language)} "
        f"to {language_name(target_language)}.\n\n"
        "IMPORTANT:\n"
        "- Preserve all formatting (line breaks, bullet points, structure)\n"
        "- Keep technical terms accurate\n"
        "- Maintain the same tone and style\n\n"
        f"TEXT TO TRANSLATE:\n{text}\n\n"
        'Respond ONLY with a JSON object in this exact format: {"text": "translated text"}'
    )


def build_cards_prompt(items: Sequence[CardText], source_language: str, target_language: str) -> str:
    cards_text = "\n\n".join(
        f"Flashcard {index}:\nQuestion: {item.question}\nAnswer: {item.answer}"
        for index, item in enumerate(items, start=1)
    )
    return (
        f"Translate the following {len(items)} flashcards from {language_name(source_language)} "
        f"to {language_name(target_language)}.\n\n"
        "IMPORTANT:\n"
        "- Preserve the educational content and accuracy\n"
        "- Keep technical terms correct in the target language\n"
        "- Keep the flashcards in the same order and return exactly as many as you received\n\n"
        f"FLASHCARDS TO TRANSLATE:\n{cards_text}\n\n"
        "Respond ONLY with a JSON object in this exact format:\n"
        '{"flashcards": [{"question": "...", "answer": "..."}]}'
    )


def parse_cards_payload(payload: dict, expected: int) -> List[CardText]:
    """Validate the model output and convert it to ``CardText`` items."""

    raw_cards = payload.get("flashcards")
    if not isinstance(raw_cards, list):
        raise TranslationUnavailable("invalid_response_format", operation="translate_many")

    if len(raw_cards) != expected:
        logger.error(
            "Traduction incohérente: %s cartes reçues, %s attendues.", len(raw_cards), expected
        )
        raise InconsistentTranslationCount(expected=expected, received=len(raw_cards))

    cards: List[CardText] = []
    for entry in raw_cards:
        if not isinstance(entry, dict):
            raise TranslationUnavailable("invalid_card_entry", operation="translate_many")
        question = str(entry.get("question") or "").strip()
        answer = str(entry.get("answer") or "").strip()
        if not question or not answer:
            raise TranslationUnavailable("empty_card_translation", operation="translate_many")
        cards.append(CardText(question=question, answer=answer))
    return cards


class OpenAITranslator:
    """``Translator`` backed by the OpenAI chat completions API."""

    def __init__(
        self,
        client: Any | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ):
        self._client = client
        self.model = model or settings.TRANSLATION_MODEL
        self.timeout = timeout if timeout is not None else settings.TRANSLATION_TIMEOUT_SECONDS

    @property
    def client(self) -> Any:
        if self._client is None:
            try:
                self._client = OpenAI(
                    api_key=settings.OPENAI_API_KEY,
                    timeout=self.timeout,
                    max_retries=0,
                )
            except OpenAIError as exc:
                logger.error("Client OpenAI indisponible: %s", exc)
                raise TranslationUnavailable("client_unavailable") from exc
        return self._client

    def _complete_json(self, system_prompt: str, prompt: str, operation: str) -> dict:
        logger.info("Appel de traduction (%s) avec le modèle %s", operation, self.model)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=settings.TRANSLATION_TEMPERATURE,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except OpenAIError as exc:
            logger.error("Erreur lors de l'appel de traduction (%s): %s", operation, exc)
            raise TranslationUnavailable(type(exc).__name__, operation=operation) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise TranslationUnavailable("empty_response", operation=operation)

        try:
            return load_json_object(content)
        except ValueError as exc:
            logger.error("Réponse de traduction illisible (%s): %s", operation, exc)
            raise TranslationUnavailable("invalid_json", operation=operation) from exc

    def translate(self, text: str, source_language: str, target_language: str) -> str:
        if source_language == target_language or not text:
            return text

        payload = self._complete_json(
            TEXT_SYSTEM_PROMPT,
            build_text_prompt(text, source_language, target_language),
            operation="translate",
        )
        translated = payload.get("text")
        if not isinstance(translated, str) or not translated.strip():
            raise TranslationUnavailable("invalid_response_format", operation="translate")
        return translated.strip()

    def translate_many(
        self,
        items: Sequence[CardText],
        source_language: str,
        target_language: str,
    ) -> List[CardText]:
        if source_language == target_language:
            return list(items)
        if not items:
            return []

        payload = self._complete_json(
            CARDS_SYSTEM_PROMPT,
            build_cards_prompt(items, source_language, target_language),
            operation="translate_many",
        )
        return parse_cards_payload(payload, expected=len(items))


def get_translator() -> Translator:
    """FastAPI dependency returning the production translator."""
    return OpenAITranslator()


__all__ = [
    "CardText",
    "OpenAITranslator",
    "Translator",
    "get_translator",
    "parse_cards_payload",
]
