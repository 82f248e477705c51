"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SECRET_KEY", "secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

from flashsync.db.base_class import Base
from flashsync.db.session import build_engine, enable_sqlite_foreign_keys
from flashsync.models.attempt_event_model import AttemptEvent
from flashsync.models.content_unit_model import ContentUnit
from flashsync.models.schedule_state_model import ScheduleState
from flashsync.models.study_scope_model import StudyScope
from flashsync.models.translation_mapping_model import TranslationMapping


# Ensure the flashsync package is importable when tests run from the repo root.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))


TABLES = [
    StudyScope.__table__,
    ContentUnit.__table__,
    TranslationMapping.__table__,
    ScheduleState.__table__,
    AttemptEvent.__table__,
]


@pytest.fixture()
def engine():
    engine = create_engine("sqlite:///:memory:", future=True)
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=TABLES)
        engine.dispose()


@pytest.fixture()
def db_session(engine) -> Session:
    SessionLocal = sessionmaker(bind=engine, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def session_factory(tmp_path):
    """Sessions on a file database, so two of them can race on the same rows."""

    engine = build_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    Base.metadata.create_all(bind=engine, tables=TABLES)
    factory = sessionmaker(bind=engine, future=True, expire_on_commit=True)
    try:
        yield factory
    finally:
        engine.dispose()
