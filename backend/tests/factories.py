from __future__ import annotations

from datetime import datetime, timezone

from combattracker.core.engine.state import (
    CombatSession,
    Participant,
    ParticipantType,
    StatusEffect,
)

T0 = datetime(2025, 11, 11, 18, 0, tzinfo=timezone.utc)
T1 = datetime(2025, 11, 11, 18, 5, tzinfo=timezone.utc)


def make_participant(pid: str, name: str, initiative: int, **kw) -> Participant:
    data = dict(
        id=pid,
        name=name,
        type=ParticipantType.MONSTER,
        initiative_value=initiative,
        max_hp=10,
        current_hp=10,
        temporary_hp=0,
        ac_value=12,
        status_effects=(),
    )
    data.update(kw)
    return Participant(**data)


def make_effect(
    eid: str, duration, name: str = "Poisoned", applied_at: int = 1
) -> StatusEffect:
    return StatusEffect(
        id=eid, name=name, duration_in_rounds=duration, applied_at_round=applied_at
    )


def make_session(participants, **kw) -> CombatSession:
    data = dict(
        id="a1b2c3d4-e5f6-47a8-b9c0-d1e2f3a4b5c6",
        status="active",
        current_round_number=1,
        current_turn_index=0,
        participants=tuple(participants),
        lair_action_initiative=20,
        owner_id="user_123",
        created_at=T0,
        updated_at=T0,
    )
    data.update(kw)
    return CombatSession(**data)
