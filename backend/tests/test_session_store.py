import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from combattracker.core.errors import NotFoundError, StorageError, ValidationError
from combattracker.core.persistence.session_store import (
    InMemorySessionStore,
    SqlSessionStore,
)
from combattracker.db.session import make_sessionmaker

from factories import make_participant, make_session


def test_save_then_load(store, session):
    store.save(session)

    assert store.load(session.id) == session


def test_load_missing_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.load("missing")


def test_save_overwrites_last_write_wins(store, session):
    store.save(session)
    later = session.model_copy(update={"current_round_number": 4})
    store.save(later)

    assert store.load(session.id).current_round_number == 4
    assert store.list() == [session.id]


def test_list_and_delete(store, session):
    other = make_session([make_participant("x", "X", 1)], id="other-session")
    store.save(session)
    store.save(other)

    assert sorted(store.list()) == sorted([session.id, "other-session"])

    store.delete(session.id)
    store.delete("never-existed")

    assert store.list() == ["other-session"]
    with pytest.raises(NotFoundError):
        store.load(session.id)


def test_update_participant_merges_fields(store, session):
    store.save(session)

    updated = store.update_participant(
        session.id, "p2", {"currentHP": 41, "temporary_hp": 6}
    )

    barbarian = updated.get_participant("p2")
    assert barbarian.current_hp == 41
    assert barbarian.temporary_hp == 6
    assert updated.updated_at > session.updated_at
    assert store.load(session.id) == updated


def test_update_missing_participant_raises_not_found(store, session):
    store.save(session)

    with pytest.raises(NotFoundError):
        store.update_participant(session.id, "nobody", {"currentHP": 1})


def test_update_missing_session_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.update_participant("missing", "p1", {"currentHP": 1})


@pytest.mark.parametrize(
    "fields",
    [{"temporaryHP": -2}, {"hitDice": 3}, {"id": "renamed"}, {"type": "dragon"}],
)
def test_invalid_participant_update_rejected(store, session, fields):
    store.save(session)

    with pytest.raises(ValidationError):
        store.update_participant(session.id, "p1", fields)

    assert store.load(session.id) == session


def test_corrupted_snapshot_is_not_repaired(memory_store, session):
    memory_store.put_raw(session.id, '{"schema_version": 1, "state": {"id": "x"}}')

    with pytest.raises(ValidationError):
        memory_store.load(session.id)


def test_snapshot_over_capacity_raises_storage_error(session):
    store = InMemorySessionStore(max_snapshot_bytes=100)

    with pytest.raises(StorageError) as exc:
        store.save(session)

    assert exc.value.meta["limit"] == 100
    assert store.list() == []


def test_sql_list_without_table_raises_storage_error():
    # таблицы не созданы: ошибка драйвера не должна утечь наружу
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    store = SqlSessionStore(make_sessionmaker(eng))

    with pytest.raises(StorageError):
        store.list()
    eng.dispose()
