"""
Pure combat rules: every function takes snapshots and returns new snapshots.

Nothing here touches the store or the undo history, and nothing raises for a
well-formed session. A session with zero participants is a caller error and
has to be rejected before ``advance_turn`` / ``rewind_turn`` are called (see
``rules.apply``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional
from uuid import uuid4

from combattracker.core.engine.state import (
    CombatSession,
    Participant,
    StatusEffect,
    utcnow,
)
from combattracker.core.errors import NotFoundError


@dataclass(frozen=True)
class DamageResult:
    participant: Participant
    damage_applied: int
    temp_hp_absorbed: int
    hp_lost: int


# ---------- turn / round ----------


def advance_turn(
    session: CombatSession, now: Optional[datetime] = None
) -> CombatSession:
    next_index = (session.current_turn_index + 1) % len(session.participants)
    round_advanced = next_index == 0

    participants = session.participants
    round_number = session.current_round_number
    if round_advanced:
        round_number += 1
        participants = decrement_effect_durations(participants)

    return session.model_copy(
        update={
            "current_turn_index": next_index,
            "current_round_number": round_number,
            "participants": participants,
            "updated_at": now or utcnow(),
        }
    )


def rewind_turn(
    session: CombatSession, now: Optional[datetime] = None
) -> CombatSession:
    """
    Шаг назад по порядку ходов.

    Раунд уменьшается только при откате с индекса 0 и не опускается ниже 1.
    Эффекты, снятые/уменьшенные при переходе раунда, НЕ восстанавливаются:
    для точного отката используется undo.
    """
    wrapped = session.current_turn_index == 0
    prev_index = (
        len(session.participants) - 1 if wrapped else session.current_turn_index - 1
    )
    round_number = session.current_round_number
    if wrapped:
        round_number -= 1

    return session.model_copy(
        update={
            "current_turn_index": prev_index,
            "current_round_number": max(1, round_number),
            "updated_at": now or utcnow(),
        }
    )


def current_participant(session: CombatSession) -> Optional[Participant]:
    if not session.participants:
        return None
    return session.participants[session.current_turn_index]


# ---------- hit points ----------


def apply_damage_detailed(participant: Participant, amount: int) -> DamageResult:
    if amount <= 0:
        return DamageResult(participant, 0, 0, 0)

    absorbed = min(participant.temporary_hp, amount)
    hp_lost = amount - absorbed

    updated = participant.model_copy(
        update={
            "temporary_hp": participant.temporary_hp - absorbed,
            # без clamp в 0: отрицательные HP = overkill
            "current_hp": participant.current_hp - hp_lost,
        }
    )
    return DamageResult(updated, amount, absorbed, hp_lost)


def apply_damage(participant: Participant, amount: int) -> Participant:
    return apply_damage_detailed(participant, amount).participant


def apply_healing(participant: Participant, amount: int) -> Participant:
    if amount <= 0:
        return participant
    return participant.model_copy(
        update={
            "current_hp": min(participant.max_hp, participant.current_hp + amount)
        }
    )


def set_temporary_hp(participant: Participant, amount: int) -> Participant:
    return participant.model_copy(update={"temporary_hp": max(0, amount)})


# ---------- status effects ----------


def _decay(effects: tuple[StatusEffect, ...]) -> tuple[StatusEffect, ...]:
    out: list[StatusEffect] = []
    for e in effects:
        if e.is_permanent:
            out.append(e)
            continue
        remaining = e.duration_in_rounds - 1  # type: ignore[operator]
        if remaining > 0:
            out.append(e.model_copy(update={"duration_in_rounds": remaining}))
    return tuple(out)


def decrement_effect_durations(
    participants: Iterable[Participant],
) -> tuple[Participant, ...]:
    return tuple(
        p.model_copy(update={"status_effects": _decay(p.status_effects)})
        for p in participants
    )


def add_status_effect(
    participant: Participant,
    name: str,
    duration_in_rounds: Optional[int],
    applied_at_round: int,
    *,
    effect_id: Optional[str] = None,
    description: Optional[str] = None,
    icon: Optional[str] = None,
) -> Participant:
    effect = StatusEffect(
        id=effect_id or str(uuid4()),
        name=name,
        duration_in_rounds=duration_in_rounds,
        applied_at_round=applied_at_round,
        description=description,
        icon=icon,
    )
    return participant.model_copy(
        update={"status_effects": participant.status_effects + (effect,)}
    )


def remove_status_effect(participant: Participant, effect_id: str) -> Participant:
    if participant.find_effect(effect_id) is None:
        raise NotFoundError(
            f"Status effect not found: {effect_id}",
            meta={"participant_id": participant.id, "effect_id": effect_id},
        )
    return participant.model_copy(
        update={
            "status_effects": tuple(
                e for e in participant.status_effects if e.id != effect_id
            )
        }
    )


# ---------- ordering ----------


def sort_participants_by_initiative(
    participants: Iterable[Participant],
) -> tuple[Participant, ...]:
    # sorted() стабилен: при равной инициативе сохраняется порядок добавления
    return tuple(sorted(participants, key=lambda p: p.initiative_value, reverse=True))


def replace_participant(
    session: CombatSession,
    participant: Participant,
    now: Optional[datetime] = None,
) -> CombatSession:
    idx = session.participant_index(participant.id)
    if idx is None:
        raise NotFoundError(
            f"Participant not found: {participant.id}",
            meta={"session_id": session.id, "participant_id": participant.id},
        )
    participants = list(session.participants)
    participants[idx] = participant
    return session.model_copy(
        update={"participants": tuple(participants), "updated_at": now or utcnow()}
    )
