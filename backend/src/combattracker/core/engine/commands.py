# backend/src/combattracker/core/engine/commands.py

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CommandBase(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: str


class AdvanceTurn(CommandBase):
    type: Literal["AdvanceTurn"] = "AdvanceTurn"


class RewindTurn(CommandBase):
    type: Literal["RewindTurn"] = "RewindTurn"


class ApplyDamage(CommandBase):
    type: Literal["ApplyDamage"] = "ApplyDamage"
    participant_id: str
    amount: int = Field(gt=0)
    # currentHP: temp HP поглощает первым; temporaryHP: бьём только по temp HP
    target_type: Literal["currentHP", "temporaryHP"] = "currentHP"


class ApplyHealing(CommandBase):
    type: Literal["ApplyHealing"] = "ApplyHealing"
    participant_id: str
    amount: int = Field(gt=0)


class SetTemporaryHP(CommandBase):
    type: Literal["SetTemporaryHP"] = "SetTemporaryHP"
    participant_id: str
    amount: int = Field(ge=0)


class AddStatusEffect(CommandBase):
    type: Literal["AddStatusEffect"] = "AddStatusEffect"
    participant_id: str
    name: str = Field(min_length=1, max_length=100)
    duration_in_rounds: Optional[int] = Field(default=None, ge=1)  # None = permanent
    description: Optional[str] = None
    icon: Optional[str] = None


class RemoveStatusEffect(CommandBase):
    type: Literal["RemoveStatusEffect"] = "RemoveStatusEffect"
    participant_id: str
    effect_id: str


class SetInitiative(CommandBase):
    type: Literal["SetInitiative"] = "SetInitiative"
    participant_id: str
    initiative: int


class SetStatus(CommandBase):
    type: Literal["SetStatus"] = "SetStatus"
    status: Literal["active", "paused", "ended"]


Command = Union[
    AdvanceTurn,
    RewindTurn,
    ApplyDamage,
    ApplyHealing,
    SetTemporaryHP,
    AddStatusEffect,
    RemoveStatusEffect,
    SetInitiative,
    SetStatus,
]
