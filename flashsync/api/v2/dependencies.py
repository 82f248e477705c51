import logging
import re
from urllib.parse import unquote

from typing import Generator, Optional

from fastapi import Depends, HTTPException, Request, status
from starlette.datastructures import State
from sqlalchemy.orm import Session

from flashsync.db import session as db_session
from flashsync.core import security

logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)


def _get_state_container(request: Request | None) -> Optional[State]:
    """Return the mutable state object associated with the request."""

    if request is None:
        return None

    state = getattr(request, "state", None)
    if state is None:
        state = State()
        setattr(request, "state", state)
    return state


def _resolve_request(request: Request = None) -> Request | None:  # type: ignore[assignment]
    return request


def get_db(
    request: Request | None = Depends(_resolve_request),
) -> Generator[Session, None, None]:
    """Provide one SQLAlchemy session shared within a single request.

    Several dependencies may ask for a session during the same request. The
    session is cached on ``request.state`` with a reference counter so it
    stays open until the last dependency exits. Without a request context
    (scripts, background work) a fresh session is created and closed.
    """

    if request is None:
        db = db_session.SessionLocal()
        try:
            yield db
        finally:
            db.close()
        return

    state = _get_state_container(request)
    db = getattr(state, "_db_session", None)
    if db is None:
        db = db_session.SessionLocal()
        setattr(state, "_db_session", db)
        setattr(state, "_db_refcount", 0)

    refcount = getattr(state, "_db_refcount", 0) + 1
    setattr(state, "_db_refcount", refcount)

    try:
        yield db
    finally:
        refcount = getattr(state, "_db_refcount", 1) - 1
        if refcount <= 0:
            try:
                db.close()
            finally:
                for attr in ("_db_session", "_db_refcount"):
                    if hasattr(state, attr):
                        delattr(state, attr)
        else:
            setattr(state, "_db_refcount", refcount)


def _normalize_token_value(raw_token: str | None) -> str | None:
    """Return a clean JWT string extracted from various transport formats.

    Tokens may reach the API through cookies, headers, or query parameters.
    Browsers can percent-encode cookie values (``Bearer%20…``) and some
    frontends send quoted strings. Case-insensitive ``Bearer`` prefixes are
    accepted too.
    """

    if raw_token is None:
        return None

    token = raw_token.strip().strip('"').strip("'")
    if not token:
        return None

    token = unquote(token)

    match = re.match(r"^(bearer|token)[\s,:]+(.+)$", token, flags=re.IGNORECASE)
    if match:
        token = match.group(2)

    token = token.strip()
    return token or None


def learner_id_from_token(token: str | None) -> str:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )

    token = _normalize_token_value(token)
    if not token:
        log.warning("Validation échouée: Pas de token fourni.")
        raise credentials_exception

    try:
        learner_id = security.decode_learner_id(token)
    except security.InvalidToken as exc:
        log.warning("Validation échouée: %s", exc.reason)
        if exc.reason == "token_expired":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="token_expired") from exc
        raise credentials_exception from exc

    return learner_id


def get_current_learner_id(request: Request) -> str:
    """Learner id from the bearer token issued by the external auth provider."""

    token_sources = (
        request.cookies.get("access_token"),
        request.headers.get("Authorization"),
        request.headers.get("X-Access-Token"),
        request.query_params.get("access_token"),
    )

    last_unauthorized_error: HTTPException | None = None

    for candidate in token_sources:
        if not _normalize_token_value(candidate):
            continue
        try:
            return learner_id_from_token(candidate)
        except HTTPException as exc:
            last_unauthorized_error = exc

    if last_unauthorized_error is not None:
        raise last_unauthorized_error

    return learner_id_from_token(None)
