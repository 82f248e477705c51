from __future__ import annotations

import warnings
from datetime import timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import SADeprecationWarning
from starlette.requests import Request

from flashsync.api.v2.dependencies import get_current_learner_id, learner_id_from_token
from flashsync.api.v2.endpoints.cards_router import (
    create_manual_card,
    delete_card,
    get_all_cards,
    get_bundled_cards,
    get_card_history,
    get_card_schedule,
    get_due_cards,
    submit_attempt,
)
from flashsync.api.v2.endpoints.scopes_router import create_scope as create_scope_endpoint
from flashsync.api.v2.endpoints.scopes_router import get_scope
from flashsync.api.v2.endpoints.stats_router import get_daily_metrics, get_overview
from flashsync.core.security import create_access_token
from flashsync.schemas.card_schema import AttemptIn, ManualCardIn
from flashsync.schemas.scope_schema import ScopeCreate
from flashsync.services.scope_provider import ScopeProvider
from tests.utils import FakeTranslator, create_card, create_cards, create_scope

LEARNER = "router-learner"


def _request(headers: dict[str, str] | None = None, query_string: str = "") -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers, "query_string": query_string.encode()})


def test_due_cards_then_attempt_hides_the_card(db_session):
    scope = create_scope(db_session)
    first, second = create_cards(db_session, scope, 2)
    translator = FakeTranslator()

    due = get_due_cards(scope.id, language="es", fallback=False, db=db_session, learner_id=LEARNER, translator=translator)
    assert due.language == "es"
    assert [card.base_id for card in due.cards] == [first.id, second.id]

    result = submit_attempt(due.cards[0].id, AttemptIn(rating=3), db=db_session, learner_id=LEARNER)
    assert result.base_content_unit_id == first.id
    assert result.interval_days == 1

    due = get_due_cards(scope.id, language="es", fallback=False, db=db_session, learner_id=LEARNER, translator=translator)
    assert [card.base_id for card in due.cards] == [second.id]
    assert due.next_available_at == result.next_review_date

    schedule = get_card_schedule(first.id, db=db_session, learner_id=LEARNER)
    assert schedule.repetitions == 1


def test_all_and_bundled_endpoints(db_session):
    scope = create_scope(db_session)
    create_cards(db_session, scope, 3)
    translator = FakeTranslator()

    practice = get_all_cards(scope.id, language="en", fallback=False, db=db_session, learner_id=LEARNER, translator=translator)
    bundle = get_bundled_cards(scope.id, db=db_session, learner_id=LEARNER, translator=translator)

    assert practice.total_cards == 3
    assert bundle.scope_id == scope.id
    assert [set(card.variants) for card in bundle.cards] == [{"pt", "en"}] * 3


def test_domain_errors_become_http_errors(db_session):
    scope = create_scope(db_session)
    (card,) = create_cards(db_session, scope, 1)

    with pytest.raises(HTTPException) as exc:
        submit_attempt(card.id, AttemptIn(rating=0), db=db_session, learner_id=LEARNER)
    assert (exc.value.status_code, exc.value.detail) == (422, "invalid_rating")

    with pytest.raises(HTTPException) as exc:
        submit_attempt(999, AttemptIn(rating=3), db=db_session, learner_id=LEARNER)
    assert (exc.value.status_code, exc.value.detail) == (404, "content_unit_not_found")

    with pytest.raises(HTTPException) as exc:
        get_due_cards(
            scope.id, language="en", fallback=False, db=db_session, learner_id=LEARNER, translator=FakeTranslator(fail=True)
        )
    assert (exc.value.status_code, exc.value.detail) == (503, "translation_unavailable")

    degraded = get_due_cards(
        scope.id, language="en", fallback=True, db=db_session, learner_id=LEARNER, translator=FakeTranslator(fail=True)
    )
    assert degraded.degraded is True


def test_manual_card_and_delete(db_session):
    scope = create_scope(db_session)

    created = create_manual_card(
        ManualCardIn(scope_id=scope.id, question="Quem?", answer="Eu."), db=db_session, learner_id=LEARNER
    )
    assert created.is_manually_authored is True

    deleted = delete_card(created.id, db=db_session, learner_id=LEARNER)
    assert deleted.status == "deleted"
    assert deleted.deleted_ids == [created.id]

    with pytest.raises(HTTPException) as exc:
        delete_card(created.id, db=db_session, learner_id=LEARNER)
    assert exc.value.status_code == 404


def test_scope_endpoints(db_session):
    parent = create_scope_endpoint(ScopeCreate(title="Química"), db=db_session, learner_id=LEARNER)
    child = create_scope_endpoint(
        ScopeCreate(title="Ácidos", base_language="PT-br", parent_id=parent.id), db=db_session, learner_id=LEARNER
    )
    assert parent.base_language == "pt"
    assert child.parent_id == parent.id

    create_manual_card(ManualCardIn(scope_id=child.id, question="pH?", answer="Acidez."), db=db_session, learner_id=LEARNER)
    child_scope = ScopeProvider(db_session).get_scope(child.id)
    create_card(db_session, child_scope, question="O que é uma base?")
    detail = get_scope(parent.id, db=db_session, learner_id=LEARNER)
    assert detail.sub_scope_ids == [child.id]
    assert detail.base_card_count == 2
    assert detail.manual_card_count == 1

    with pytest.raises(HTTPException) as exc:
        create_scope_endpoint(ScopeCreate(title="Órfão", parent_id=404), db=db_session, learner_id=LEARNER)
    assert exc.value.detail == "scope_not_found"


def test_stats_endpoints(db_session):
    scope = create_scope(db_session)
    (card,) = create_cards(db_session, scope, 1)
    submit_attempt(card.id, AttemptIn(rating=4), db=db_session, learner_id=LEARNER)

    overview = get_overview(db=db_session, learner_id=LEARNER)
    daily = get_daily_metrics(days=3, db=db_session, learner_id=LEARNER)

    assert overview.total_attempts == 1
    assert overview.study_streak == 1
    assert len(daily) == 3
    assert daily[-1].attempts == 1


def test_learner_id_comes_from_the_token_subject():
    token = create_access_token("learner-abc")

    assert learner_id_from_token(f"Bearer {token}") == "learner-abc"
    assert get_current_learner_id(_request({"Authorization": f"Bearer {token}"})) == "learner-abc"
    assert get_current_learner_id(_request({"Cookie": f"access_token=Bearer%20{token}"})) == "learner-abc"
    assert get_current_learner_id(_request(query_string=f"access_token={token}")) == "learner-abc"


def test_missing_or_expired_tokens_are_rejected():
    with pytest.raises(HTTPException) as exc:
        get_current_learner_id(_request())
    assert exc.value.status_code == 401

    expired = create_access_token("learner-abc", expires_delta=timedelta(minutes=-5))
    with pytest.raises(HTTPException) as exc:
        learner_id_from_token(expired)
    assert exc.value.detail == "token_expired"

    with pytest.raises(HTTPException) as exc:
        learner_id_from_token("not-a-jwt")
    assert exc.value.detail == "Could not validate credentials"


def test_card_history_is_shared_by_every_language(db_session):
    scope = create_scope(db_session)
    (card,) = create_cards(db_session, scope, 1)
    translator = FakeTranslator()
    english = get_due_cards(
        scope.id, language="en", fallback=False, db=db_session, learner_id=LEARNER, translator=translator
    ).cards[0]

    submit_attempt(card.id, AttemptIn(rating=3), db=db_session, learner_id=LEARNER)
    submit_attempt(english.id, AttemptIn(rating=1), db=db_session, learner_id=LEARNER)

    history = get_card_history(english.id, limit=20, db=db_session, learner_id=LEARNER)
    assert [event.rating for event in history] == [1, 3]
    assert {event.base_content_unit_id for event in history} == {card.id}

    latest = get_card_history(card.id, limit=1, db=db_session, learner_id=LEARNER)
    assert [event.rating for event in latest] == [1]

    with pytest.raises(HTTPException) as exc:
        get_card_history(999, limit=20, db=db_session, learner_id=LEARNER)
    assert exc.value.status_code == 404


def test_scope_creation_emits_no_deprecation_warning(db_session):
    with warnings.catch_warnings():
        warnings.simplefilter("error", SADeprecationWarning)
        created = create_scope_endpoint(ScopeCreate(title="Física"), db=db_session, learner_id=LEARNER)
    assert created.id is not None
