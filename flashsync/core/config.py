# Fichier: flashsync/core/config.py
from pydantic_settings import BaseSettings
from typing import Optional, List
from pydantic import ValidationError, field_validator
import sys

class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    OPENAI_API_KEY: Optional[str] = None

    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:8000",
        "http://127.0.0.1:5173",
    ]

    ENVIRONMENT: str = "development"

    # --- Languages ---
    # Cards are authored in the base language; every other language is a variant.
    BASE_LANGUAGE: str = "pt"

    # --- Translation (text generation collaborator) ---
    TRANSLATION_MODEL: str = "gpt-4o"
    TRANSLATION_TEMPERATURE: float = 0.3
    TRANSLATION_TIMEOUT_SECONDS: float = 30.0

    # --- Scheduling ---
    SCHEDULE_WRITE_MAX_RETRIES: int = 3

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300
    DATABASE_CONNECTION_MAX_RETRIES: int = 1
    DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS: float = 1.0

    # --- Auth boundary ---
    # Tokens are issued by the external auth provider; we only read the ``sub`` claim.
    JWT_ALGORITHM: str = "HS256"

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Ensure Postgres URLs use the psycopg driver.

        Managed Postgres providers still expose database URLs using the legacy
        ``postgres://`` scheme, which SQLAlchemy no longer accepts. We upgrade
        those URLs (and the bare ``postgresql://`` / psycopg2 variants) to
        ``postgresql+psycopg://`` while leaving SQLite and other backends
        untouched.
        """

        if not isinstance(value, str):
            return value

        if value.startswith("postgresql+psycopg://"):
            return value

        replacements = {
            "postgres://": "postgresql+psycopg://",
            "postgresql://": "postgresql+psycopg://",
            "postgresql+psycopg2://": "postgresql+psycopg://",
            "postgresql+asyncpg://": "postgresql+psycopg://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @field_validator("BASE_LANGUAGE", mode="before")
    @classmethod
    def _normalize_base_language(cls, value: str) -> str:
        if not isinstance(value, str):
            return value
        return value.strip().lower().split("-")[0] or "pt"

def _log_settings_validation_error(exc: ValidationError) -> None:
    """Pretty-print missing or invalid environment variables.

    Pydantic raises during module import, which makes it hard to see which
    variable is responsible. The structured payload is printed to stderr
    before the exception is re-raised.
    """

    header = "Configuration error while loading environment variables:"
    print(header, file=sys.stderr)

    details = exc.errors()
    if details:
        for error in details:
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Unknown validation error")
            type_name = error.get("type")
            hint_parts = [message]
            if type_name:
                hint_parts.append(f"(type={type_name})")
            hint = " ".join(hint_parts)
            print(f"  - {location}: {hint}", file=sys.stderr)
    else:
        print(exc, file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
