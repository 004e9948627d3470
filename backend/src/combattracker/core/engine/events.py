from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from combattracker.core.engine.state import utcnow

ActionType = Literal[
    "damage",
    "heal",
    "effect_applied",
    "effect_removed",
    "initiative_set",
    "turn_advanced",
    "turn_rewound",
    "round_started",
    "round_ended",
    "undo",
    "redo",
]


class CombatLogEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=utcnow)

    round_number: int = Field(ge=1)
    turn_index: int = Field(ge=0)
    action_type: ActionType

    actor: Optional[str] = None
    target: Optional[str] = None

    details: dict[str, Any] = Field(default_factory=dict)
    description: str


def ev_turn_advanced(
    *, round_: int, turn_index: int, actor: Optional[str], actor_name: str
) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=turn_index,
        action_type="turn_advanced",
        actor=actor,
        description=f"{actor_name}'s turn",
    )


def ev_turn_rewound(
    *, round_: int, turn_index: int, actor: Optional[str], actor_name: str
) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=turn_index,
        action_type="turn_rewound",
        actor=actor,
        description=f"Turn rewound to {actor_name}",
    )


def ev_round_ended(*, round_: int, turn_index: int) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=turn_index,
        action_type="round_ended",
        description=f"Round {round_} ended",
    )


def ev_round_started(*, round_: int) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=0,
        action_type="round_started",
        description=f"Round {round_} started",
    )


def ev_damage(
    *,
    round_: int,
    turn_index: int,
    target: str,
    target_name: str,
    amount: int,
    temp_hp_absorbed: int,
    hp_lost: int,
    hp_before: int,
    hp_after: int,
) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=turn_index,
        action_type="damage",
        target=target,
        details={
            "amount": amount,
            "temp_hp_absorbed": temp_hp_absorbed,
            "hp_lost": hp_lost,
            "hp_before": hp_before,
            "hp_after": hp_after,
        },
        description=f"{target_name} takes {amount} damage",
    )


def ev_healed(
    *,
    round_: int,
    turn_index: int,
    target: str,
    target_name: str,
    amount: int,
    hp_before: int,
    hp_after: int,
) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=turn_index,
        action_type="heal",
        target=target,
        details={"amount": amount, "hp_before": hp_before, "hp_after": hp_after},
        description=f"{target_name} heals {hp_after - hp_before} HP",
    )


def ev_effect_applied(
    *,
    round_: int,
    turn_index: int,
    target: str,
    effect_id: str,
    effect_name: str,
    duration_in_rounds: Optional[int],
) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=turn_index,
        action_type="effect_applied",
        target=target,
        details={
            "effect_id": effect_id,
            "effect_name": effect_name,
            "duration_in_rounds": duration_in_rounds,
        },
        description=f"{effect_name} applied",
    )


def ev_effect_removed(
    *,
    round_: int,
    turn_index: int,
    target: str,
    effect_id: str,
    effect_name: str,
    reason: Literal["expired", "removed"],
) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=turn_index,
        action_type="effect_removed",
        target=target,
        details={"effect_id": effect_id, "effect_name": effect_name, "reason": reason},
        description=f"{effect_name} {'expired' if reason == 'expired' else 'removed'}",
    )


def ev_initiative_set(
    *, round_: int, turn_index: int, target: str, initiative: int
) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=turn_index,
        action_type="initiative_set",
        target=target,
        details={"initiative": initiative},
        description=f"Initiative set to {initiative}",
    )


def ev_history(
    *, action: Literal["undo", "redo"], round_: int, turn_index: int
) -> CombatLogEntry:
    return CombatLogEntry(
        round_number=round_,
        turn_index=turn_index,
        action_type=action,
        description="Undo" if action == "undo" else "Redo",
    )
