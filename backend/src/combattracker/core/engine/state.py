from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# durationInRounds = null -> эффект бессрочный
PERMANENT: None = None

SessionStatus = Literal["active", "paused", "ended"]


class ParticipantType(str, Enum):
    MONSTER = "monster"
    CHARACTER = "character"
    NPC = "npc"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Snapshot(BaseModel):
    # снапшоты неизменяемые: любое изменение -> model_copy(update=...)
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class StatusEffect(_Snapshot):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=100)
    duration_in_rounds: Optional[int] = Field(ge=1, alias="durationInRounds")
    applied_at_round: int = Field(ge=0, alias="appliedAtRound")
    description: Optional[str] = None
    icon: Optional[str] = None

    @property
    def is_permanent(self) -> bool:
        return self.duration_in_rounds is PERMANENT


class Participant(_Snapshot):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    type: ParticipantType
    initiative_value: int = Field(alias="initiativeValue")

    max_hp: int = Field(ge=0, alias="maxHP")
    # может уйти в минус: overkill нужен для death saves / instant death
    current_hp: int = Field(alias="currentHP")
    temporary_hp: int = Field(ge=0, alias="temporaryHP")

    ac_value: int = Field(alias="acValue")
    status_effects: tuple[StatusEffect, ...] = Field(alias="statusEffects")
    metadata: Optional[dict[str, Any]] = None

    def find_effect(self, effect_id: str) -> Optional[StatusEffect]:
        for e in self.status_effects:
            if e.id == effect_id:
                return e
        return None


class CombatSession(_Snapshot):
    id: str = Field(min_length=1)
    encounter_id: Optional[str] = Field(default=None, alias="encounterId")
    status: SessionStatus

    current_round_number: int = Field(ge=1, alias="currentRoundNumber")
    current_turn_index: int = Field(ge=0, alias="currentTurnIndex")

    # порядок = порядок ходов (сортируется один раз при старте боя)
    participants: tuple[Participant, ...]

    lair_action_initiative: Optional[int] = Field(
        default=20, alias="lairActionInitiative"
    )

    owner_id: str = Field(min_length=1)
    org_id: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @model_validator(mode="after")
    def _check_turn_index(self) -> "CombatSession":
        if self.participants and self.current_turn_index >= len(self.participants):
            raise ValueError(
                f"currentTurnIndex {self.current_turn_index} out of range "
                f"for {len(self.participants)} participants"
            )
        return self

    def participant_index(self, participant_id: str) -> Optional[int]:
        for i, p in enumerate(self.participants):
            if p.id == participant_id:
                return i
        return None

    def get_participant(self, participant_id: str) -> Optional[Participant]:
        idx = self.participant_index(participant_id)
        return None if idx is None else self.participants[idx]
