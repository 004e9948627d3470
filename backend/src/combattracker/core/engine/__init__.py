
from .history import HistoryCounts, HistoryManager
from .state import (
    PERMANENT,
    CombatSession,
    Participant,
    ParticipantType,
    StatusEffect,
)
from .turns import (
    DamageResult,
    advance_turn,
    apply_damage,
    apply_healing,
    decrement_effect_durations,
    rewind_turn,
    sort_participants_by_initiative,
)

__all__ = [
    "PERMANENT",
    "CombatSession",
    "DamageResult",
    "HistoryCounts",
    "HistoryManager",
    "Participant",
    "ParticipantType",
    "StatusEffect",
    "advance_turn",
    "apply_damage",
    "apply_healing",
    "decrement_effect_durations",
    "rewind_turn",
    "sort_participants_by_initiative",
]
