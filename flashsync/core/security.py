# Fichier: flashsync/core/security.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Union

from jose import ExpiredSignatureError, JWTError, jwt

from flashsync.core.config import settings

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = 60

logger = logging.getLogger(__name__)


class InvalidToken(Exception):
    """Raised when a bearer token cannot be trusted."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def create_access_token(subject: Union[str, Any], expires_delta: timedelta = None) -> str:
    """Crée un token d'accès JWT (utilisé par les scripts et les tests)."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_learner_id(token: str) -> str:
    """Return the learner id stored in the ``sub`` claim of *token*."""

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError as exc:
        raise InvalidToken("token_expired") from exc
    except JWTError as exc:
        raise InvalidToken("invalid_token") from exc

    subject = payload.get("sub")
    if subject is None or not str(subject).strip():
        raise InvalidToken("missing_subject")
    return str(subject)
