import json

import pytest

from combattracker.core.engine.state import PERMANENT
from combattracker.core.errors import ValidationError
from combattracker.core.persistence.state_codec import (
    SCHEMA_VERSION,
    pack_payload,
    session_from_dict,
    session_from_payload,
    session_to_dict,
    unpack_payload,
)

from factories import make_effect, make_participant, make_session


def test_session_to_dict_uses_storage_keys(session):
    d = session_to_dict(session)

    assert d["currentRoundNumber"] == 1
    assert d["currentTurnIndex"] == 0
    assert d["owner_id"] == "user_123"
    assert d["lairActionInitiative"] == 20
    p = d["participants"][0]
    assert set(["id", "name", "type", "initiativeValue", "maxHP", "currentHP",
                "temporaryHP", "acValue", "statusEffects"]) <= set(p)
    assert p["type"] == "monster"


def test_permanent_effect_is_stored_as_null():
    p = make_participant("p", "P", 10, status_effects=(make_effect("c", PERMANENT),))
    d = session_to_dict(make_session([p]))

    assert d["participants"][0]["statusEffects"][0]["durationInRounds"] is None


def test_snapshot_survives_storage_roundtrip():
    p = make_participant(
        "p", "P", 10, current_hp=-4, temporary_hp=2,
        status_effects=(make_effect("e", 2), make_effect("c", PERMANENT)),
    )
    session = make_session([p])

    assert session_from_payload(pack_payload(session)) == session


def test_load_accepts_legacy_unwrapped_state(session):
    raw = json.dumps(session_to_dict(session))

    sv, state = unpack_payload(raw)

    assert sv == 1
    assert session_from_dict(state) == session


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d.pop("currentRoundNumber"),
        lambda d: d.update(currentRoundNumber=0),
        lambda d: d.update(currentTurnIndex=3),
        lambda d: d.update(participants=[]),
        lambda d: d.update(status="archived"),
        lambda d: d["participants"][0].update(type="dragon"),
        lambda d: d["participants"][0].update(temporaryHP=-1),
        lambda d: d["participants"][0].pop("maxHP"),
        lambda d: d["participants"][0].pop("temporaryHP"),
        lambda d: d["participants"][0].pop("statusEffects"),
        lambda d: d["participants"][0].update(
            statusEffects=[{"id": "x", "name": "Bad", "durationInRounds": 0, "appliedAtRound": 1}]
        ),
    ],
)
def test_invalid_snapshot_raises_validation_error(session, mutate):
    d = session_to_dict(session)
    mutate(d)

    with pytest.raises(ValidationError):
        session_from_dict(d)


def test_validation_error_carries_details(session):
    d = session_to_dict(session)
    d["currentRoundNumber"] = "soon"

    with pytest.raises(ValidationError) as exc:
        session_from_dict(d)

    assert exc.value.errors
    assert exc.value.meta["session_id"] == session.id


def test_garbage_payload_raises_validation_error():
    with pytest.raises(ValidationError):
        session_from_payload("{not json")
    with pytest.raises(ValidationError):
        session_from_payload("[1, 2, 3]")


def test_future_schema_version_rejected(session):
    raw = json.dumps({"schema_version": SCHEMA_VERSION + 1, "state": session_to_dict(session)})

    with pytest.raises(ValidationError):
        unpack_payload(raw)
