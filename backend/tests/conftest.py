from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from combattracker.api.main import create_app
from combattracker.core.config import Settings
from combattracker.core.engine.state import CombatSession, Participant, ParticipantType
from combattracker.core.persistence.session_store import (
    InMemorySessionStore,
    SqlSessionStore,
)
from combattracker.db.init_db import init_db
from combattracker.db.session import make_sessionmaker

from factories import make_participant, make_session


@pytest.fixture()
def goblin() -> Participant:
    return make_participant(
        "p1", "Goblin Ambusher", 14, max_hp=7, current_hp=7, ac_value=15
    )


@pytest.fixture()
def barbarian() -> Participant:
    return make_participant(
        "p2",
        "Barbarian Hero",
        10,
        type=ParticipantType.CHARACTER,
        max_hp=60,
        current_hp=60,
        ac_value=16,
    )


@pytest.fixture()
def wizard() -> Participant:
    return make_participant(
        "p3",
        "Wizard",
        8,
        type=ParticipantType.CHARACTER,
        max_hp=28,
        current_hp=28,
    )


@pytest.fixture()
def session(goblin, barbarian, wizard) -> CombatSession:
    return make_session([goblin, barbarian, wizard])


@pytest.fixture()
def memory_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def sql_store():
    # SQLite in-memory (один коннект на тест)
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(eng)
    yield SqlSessionStore(make_sessionmaker(eng))
    eng.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture()
def client():
    app = create_app(
        settings=Settings(history_max_depth=50, log_level="WARNING"),
        store=InMemorySessionStore(),
    )
    with TestClient(app) as c:
        yield c
