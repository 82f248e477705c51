import logging
import os
import re

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Imports de l'application
from flashsync.core.config import settings
from flashsync.db import base as _models  # noqa: F401 - registers every table on Base.metadata
from flashsync.db import session as db_session
from flashsync.db.base_class import Base
from flashsync.api.v2.api import api_router

# --- Configuration du logging ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# --- Initialisation de l'application FastAPI ---
app = FastAPI(
    title="FlashSync API V2",
    openapi_url="/api/v2/openapi.json"
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


def _build_cors_origins() -> list[str]:
    origins = {_sanitize_origin(o) for o in settings.BACKEND_CORS_ORIGINS}

    additional = os.getenv("ADDITIONAL_CORS_ORIGINS")
    if additional:
        for origin in additional.split(","):
            origins.add(_sanitize_origin(origin))

    allow_origins = sorted({origin for origin in origins if origin})
    logger.info("CORS origins configurés: %s", allow_origins)
    return allow_origins


def _build_cors_regex() -> re.Pattern[str] | None:
    raw = os.getenv("ADDITIONAL_CORS_ORIGIN_REGEXES")
    if not raw:
        return None

    valid_patterns: list[str] = []
    for pattern in raw.split(","):
        candidate = pattern.strip()
        if not candidate:
            continue
        try:
            re.compile(candidate)
        except re.error as exc:
            logger.warning("Regex CORS ignorée (invalide): %s (%s)", candidate, exc)
            continue
        valid_patterns.append(candidate)

    if not valid_patterns:
        return None
    return re.compile("|".join(f"(?:{pattern})" for pattern in valid_patterns))


# --- Configuration des Middlewares ---
cors_kwargs: dict[str, object] = {
    "allow_origins": _build_cors_origins(),
    "allow_credentials": True,
    "allow_methods": ["*"],
    "allow_headers": ["Authorization", "Content-Type", "X-Access-Token"],
}

cors_regex = _build_cors_regex()
if cors_regex is not None:
    cors_kwargs["allow_origin_regex"] = cors_regex

app.add_middleware(CORSMiddleware, **cors_kwargs)

app.include_router(api_router, prefix="/api/v2")


# --- Événement de Démarrage ---
@app.on_event("startup")
def startup():
    logger.info("Vérification et création des tables de la base de données...")
    Base.metadata.create_all(bind=db_session.engine)
    logger.info("✅ Les tables de la base de données sont prêtes.")


# --- Route Racine ---
@app.get("/")
def read_root():
    return {"message": "Welcome to FlashSync API V2!"}
