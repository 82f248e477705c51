import pytest
from sqlalchemy import func, select

from flashsync.core.errors import InvalidCardContent, NotFound
from flashsync.models.attempt_event_model import AttemptEvent
from flashsync.models.content_unit_model import ContentUnit
from flashsync.models.schedule_state_model import ScheduleState
from flashsync.models.translation_mapping_model import TranslationMapping
from flashsync.services.attempt_recorder import AttemptRecorder
from flashsync.services.card_service import MAX_CARD_TEXT_LENGTH, CardService
from flashsync.services.scope_provider import ScopeProvider
from flashsync.services.translation_cache import TranslationCache
from tests.utils import FakeTranslator, create_card, create_scope


def _count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_manual_card_is_a_base_card(db_session):
    scope = create_scope(db_session)

    unit = CardService(db_session).create_manual_card(scope.id, "  Qual é a capital?  ", "Brasília", "pt-BR")

    assert unit.id is not None
    assert unit.question == "Qual é a capital?"
    assert unit.language == "pt"
    assert unit.is_manually_authored is True
    assert [u.id for u in ScopeProvider(db_session).list_manual_units(scope.id)] == [unit.id]


def test_manual_card_defaults_to_scope_language(db_session):
    scope = create_scope(db_session, base_language="fr")

    unit = CardService(db_session).create_manual_card(scope.id, "Question ?", "Réponse.")

    assert unit.language == "fr"


def test_manual_card_in_another_language_is_rejected(db_session):
    scope = create_scope(db_session)

    with pytest.raises(InvalidCardContent) as exc:
        CardService(db_session).create_manual_card(scope.id, "What?", "That.", "en")

    assert exc.value.context == {"field": "language"}
    assert _count(db_session, ContentUnit) == 0


@pytest.mark.parametrize(
    "question, answer, field_name",
    [("   ", "ok", "question"), ("ok", "", "answer"), ("x" * (MAX_CARD_TEXT_LENGTH + 1), "ok", "question")],
)
def test_manual_card_requires_text(db_session, question, answer, field_name):
    scope = create_scope(db_session)

    with pytest.raises(InvalidCardContent) as exc:
        CardService(db_session).create_manual_card(scope.id, question, answer)

    assert exc.value.context["field"] == field_name


def test_manual_card_for_unknown_scope(db_session):
    with pytest.raises(NotFound) as exc:
        CardService(db_session).create_manual_card(77, "Q", "A")
    assert exc.value.code == "scope_not_found"


def test_delete_removes_variants_and_progress(db_session):
    scope = create_scope(db_session)
    base = create_card(db_session, scope)
    survivor = create_card(db_session, scope, question="Fica")
    english = TranslationCache(db_session, FakeTranslator()).get_or_create(base, "en")
    AttemptRecorder(db_session).record_attempt("learner", english.id, 3)
    base_id, english_id, survivor_id = base.id, english.id, survivor.id

    deleted = CardService(db_session).delete_card(english_id)

    assert deleted == [base_id, english_id]
    assert db_session.execute(select(ContentUnit.id)).scalars().all() == [survivor_id]
    assert _count(db_session, TranslationMapping) == 0
    assert _count(db_session, ScheduleState) == 0
    assert _count(db_session, AttemptEvent) == 0


def test_delete_unknown_card(db_session):
    with pytest.raises(NotFound):
        CardService(db_session).delete_card(5)
