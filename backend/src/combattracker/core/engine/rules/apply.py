from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from combattracker.core.engine.commands import (
    AddStatusEffect,
    AdvanceTurn,
    ApplyDamage,
    ApplyHealing,
    Command,
    RemoveStatusEffect,
    RewindTurn,
    SetInitiative,
    SetStatus,
    SetTemporaryHP,
)
from combattracker.core.engine.events import (
    ev_damage,
    ev_effect_applied,
    ev_effect_removed,
    ev_healed,
    ev_initiative_set,
    ev_round_ended,
    ev_round_started,
    ev_turn_advanced,
    ev_turn_rewound,
)
from combattracker.core.engine.state import CombatSession, Participant, utcnow
from combattracker.core.engine.turns import (
    add_status_effect,
    advance_turn,
    apply_damage_detailed,
    apply_healing,
    current_participant,
    remove_status_effect,
    replace_participant,
    rewind_turn,
    set_temporary_hp,
)
from combattracker.core.errors import ConsistencyError, NotFoundError

Events = List[Dict[str, Any]]


def _require_participants(session: CombatSession, cmd: Command) -> None:
    if not session.participants:
        raise ConsistencyError(
            f"{cmd.type} requires at least one participant",
            meta={"session_id": session.id, "command": cmd.model_dump()},
        )


def _get_participant(session: CombatSession, participant_id: str) -> Participant:
    p = session.get_participant(participant_id)
    if p is None:
        raise NotFoundError(
            f"Participant not found: {participant_id}",
            meta={"session_id": session.id, "participant_id": participant_id},
        )
    return p


def _expired_effects(before: CombatSession, after: CombatSession) -> Events:
    """Эффекты, исчезнувшие при переходе раунда (истекли по длительности)."""
    out: Events = []
    for old, new in zip(before.participants, after.participants):
        kept = {e.id for e in new.status_effects}
        for e in old.status_effects:
            if e.id not in kept:
                out.append(
                    ev_effect_removed(
                        round_=after.current_round_number,
                        turn_index=after.current_turn_index,
                        target=old.id,
                        effect_id=e.id,
                        effect_name=e.name,
                        reason="expired",
                    ).model_dump(mode="json")
                )
    return out


def apply_command(
    session: CombatSession, cmd: Command, now: Optional[datetime] = None
) -> Tuple[CombatSession, Events]:
    """
    Применить команду к снапшоту: вернуть новый снапшот + записи боевого лога.

    Входной снапшот не меняется. Контракты вызывающей стороны проверяются
    здесь, до чистых функций из turns.py:
    - ход/откат по пустому списку участников -> ConsistencyError
    - неизвестный participant_id / effect_id -> NotFoundError
    """
    now = now or utcnow()
    events: Events = []
    round_ = session.current_round_number
    turn_index = session.current_turn_index

    if isinstance(cmd, AdvanceTurn):
        _require_participants(session, cmd)
        new_session = advance_turn(session, now=now)

        if new_session.current_round_number != round_:
            events.append(
                ev_round_ended(round_=round_, turn_index=turn_index).model_dump(
                    mode="json"
                )
            )
            events.append(
                ev_round_started(round_=new_session.current_round_number).model_dump(
                    mode="json"
                )
            )
            events.extend(_expired_effects(session, new_session))

        actor = current_participant(new_session)
        assert actor is not None
        events.append(
            ev_turn_advanced(
                round_=new_session.current_round_number,
                turn_index=new_session.current_turn_index,
                actor=actor.id,
                actor_name=actor.name,
            ).model_dump(mode="json")
        )
        return new_session, events

    if isinstance(cmd, RewindTurn):
        _require_participants(session, cmd)
        new_session = rewind_turn(session, now=now)
        actor = current_participant(new_session)
        assert actor is not None
        events.append(
            ev_turn_rewound(
                round_=new_session.current_round_number,
                turn_index=new_session.current_turn_index,
                actor=actor.id,
                actor_name=actor.name,
            ).model_dump(mode="json")
        )
        return new_session, events

    if isinstance(cmd, ApplyDamage):
        target = _get_participant(session, cmd.participant_id)

        if cmd.target_type == "temporaryHP":
            # урон только по temp HP, остаток сгорает
            absorbed = min(target.temporary_hp, cmd.amount)
            updated = set_temporary_hp(target, target.temporary_hp - absorbed)
            hp_lost = 0
        else:
            result = apply_damage_detailed(target, cmd.amount)
            updated = result.participant
            absorbed = result.temp_hp_absorbed
            hp_lost = result.hp_lost

        events.append(
            ev_damage(
                round_=round_,
                turn_index=turn_index,
                target=target.id,
                target_name=target.name,
                amount=cmd.amount,
                temp_hp_absorbed=absorbed,
                hp_lost=hp_lost,
                hp_before=target.current_hp,
                hp_after=updated.current_hp,
            ).model_dump(mode="json")
        )
        return replace_participant(session, updated, now=now), events

    if isinstance(cmd, ApplyHealing):
        target = _get_participant(session, cmd.participant_id)
        updated = apply_healing(target, cmd.amount)
        events.append(
            ev_healed(
                round_=round_,
                turn_index=turn_index,
                target=target.id,
                target_name=target.name,
                amount=cmd.amount,
                hp_before=target.current_hp,
                hp_after=updated.current_hp,
            ).model_dump(mode="json")
        )
        return replace_participant(session, updated, now=now), events

    if isinstance(cmd, SetTemporaryHP):
        target = _get_participant(session, cmd.participant_id)
        updated = set_temporary_hp(target, cmd.amount)
        return replace_participant(session, updated, now=now), events

    if isinstance(cmd, AddStatusEffect):
        target = _get_participant(session, cmd.participant_id)
        updated = add_status_effect(
            target,
            cmd.name,
            cmd.duration_in_rounds,
            applied_at_round=round_,
            description=cmd.description,
            icon=cmd.icon,
        )
        effect = updated.status_effects[-1]
        events.append(
            ev_effect_applied(
                round_=round_,
                turn_index=turn_index,
                target=target.id,
                effect_id=effect.id,
                effect_name=effect.name,
                duration_in_rounds=effect.duration_in_rounds,
            ).model_dump(mode="json")
        )
        return replace_participant(session, updated, now=now), events

    if isinstance(cmd, RemoveStatusEffect):
        target = _get_participant(session, cmd.participant_id)
        effect = target.find_effect(cmd.effect_id)
        updated = remove_status_effect(target, cmd.effect_id)
        assert effect is not None
        events.append(
            ev_effect_removed(
                round_=round_,
                turn_index=turn_index,
                target=target.id,
                effect_id=effect.id,
                effect_name=effect.name,
                reason="removed",
            ).model_dump(mode="json")
        )
        return replace_participant(session, updated, now=now), events

    if isinstance(cmd, SetInitiative):
        target = _get_participant(session, cmd.participant_id)
        # порядок ходов не пересортировываем: он фиксируется при старте боя
        updated = target.model_copy(update={"initiative_value": cmd.initiative})
        events.append(
            ev_initiative_set(
                round_=round_,
                turn_index=turn_index,
                target=target.id,
                initiative=cmd.initiative,
            ).model_dump(mode="json")
        )
        return replace_participant(session, updated, now=now), events

    if isinstance(cmd, SetStatus):
        return session.model_copy(update={"status": cmd.status, "updated_at": now}), events

    raise TypeError(f"Unhandled command: {type(cmd).__name__}")
