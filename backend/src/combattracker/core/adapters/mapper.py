from __future__ import annotations

from collections.abc import Mapping as ABCMapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Union, cast
from uuid import uuid4

from combattracker.core.engine.state import (
    CombatSession,
    Participant,
    ParticipantType,
    utcnow,
)
from combattracker.core.engine.turns import sort_participants_by_initiative
from combattracker.core.errors import ConsistencyError


@dataclass(frozen=True)
class ParticipantOverrides:
    name: Optional[str] = None
    current_hp: Optional[int] = None
    temporary_hp: Optional[int] = None
    ac_value: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None


def _as_dict(obj: Any) -> dict[str, Any]:
    """
    Вход: dict / pydantic model / любой Mapping -> dict[str, Any].
    Листы персонажей приходят из внешней библиотеки, форма у них плавающая.
    """
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return cast(dict[str, Any], obj)

    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        res = dump()
        if isinstance(res, dict):
            return cast(dict[str, Any], res)

    if isinstance(obj, ABCMapping):
        return dict(cast(ABCMapping[str, Any], obj))
    raise TypeError(f"Unsupported sheet payload: {type(obj).__name__}")


def _first(d: dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return None


def participant_from_creature(
    creature_payload: Any,
    *,
    participant_type: Union[ParticipantType, str],
    initiative_value: int,
    participant_id: Optional[str] = None,
    overrides: Optional[ParticipantOverrides] = None,
) -> Participant:
    """
    Собрать участника боя из данных существа/персонажа.

    Понимает и snake_case (ac / hp_max / hp_current), и camelCase
    (acValue / maxHP / currentHP) ключи. Отсутствующие ac/hp -> KeyError:
    дефолты тут не подставляем.
    """
    data = _as_dict(creature_payload)
    ov = overrides or ParticipantOverrides()

    max_hp = _first(data, "hp_max", "maxHP", "max_hp")
    ac = _first(data, "ac", "acValue", "ac_value")
    if max_hp is None:
        raise KeyError("hp_max")
    if ac is None:
        raise KeyError("ac")

    current_hp = _first(data, "hp_current", "currentHP", "current_hp")
    temp_hp = _first(data, "temp_hp", "temporaryHP", "temporary_hp")

    return Participant(
        id=participant_id or str(uuid4()),
        name=ov.name or str(data.get("name") or "Unnamed"),
        type=ParticipantType(participant_type),
        initiative_value=int(initiative_value),
        max_hp=int(max_hp),
        current_hp=int(
            ov.current_hp
            if ov.current_hp is not None
            else (current_hp if current_hp is not None else max_hp)
        ),
        temporary_hp=int(
            ov.temporary_hp
            if ov.temporary_hp is not None
            else (temp_hp if temp_hp is not None else 0)
        ),
        ac_value=int(ov.ac_value if ov.ac_value is not None else ac),
        status_effects=(),
        metadata=ov.metadata,
    )


def new_combat_session(
    participants: Iterable[Participant],
    *,
    owner_id: str,
    session_id: Optional[str] = None,
    encounter_id: Optional[str] = None,
    org_id: Optional[str] = None,
    lair_action_initiative: Optional[int] = 20,
    now: Optional[datetime] = None,
) -> CombatSession:
    """Старт боя: раунд 1, ход 0, участники отсортированы по инициативе."""
    ordered = sort_participants_by_initiative(participants)
    if not ordered:
        raise ConsistencyError("Combat session requires at least one participant")

    ts = now or utcnow()
    return CombatSession(
        id=session_id or str(uuid4()),
        encounter_id=encounter_id,
        status="active",
        current_round_number=1,
        current_turn_index=0,
        participants=ordered,
        lair_action_initiative=lair_action_initiative,
        owner_id=owner_id,
        org_id=org_id,
        created_at=ts,
        updated_at=ts,
    )
