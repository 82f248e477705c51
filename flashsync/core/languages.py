# Fichier : flashsync/core/languages.py
from __future__ import annotations

import logging

from flashsync.core.config import settings

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES: tuple[str, ...] = ("pt", "en", "es", "fr", "de", "it")

LANGUAGE_NAMES = {
    "pt": "Portuguese",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
}


def base_language() -> str:
    """Language in which canonical cards are authored."""
    return settings.BASE_LANGUAGE


def normalize_language(language: str | None, fallback: str | None = None) -> str:
    """
    Retourne un code de langue supporté.
    Ex: "pt-BR" -> "pt", "EN_us" -> "en", "xx" -> fallback.
    """
    default = fallback or base_language()
    if not language:
        return default

    code = language.strip().lower().replace("_", "-").split("-")[0]
    if code in SUPPORTED_LANGUAGES:
        return code

    logger.warning("Langue non supportée: %s, utilisation de %s", language, default)
    return default


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)
