from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from combattracker.core.engine.state import Participant


class CreateSessionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    participants: List[Participant] = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    encounter_id: Optional[str] = None
    org_id: Optional[str] = None
    lair_action_initiative: Optional[int] = Field(default=20, ge=1, le=30)


class ApplyCommandRequest(BaseModel):
    command: Dict[str, Any]


class HistoryOut(BaseModel):
    undo_count: int
    redo_count: int


class SessionResponse(BaseModel):
    session_id: str
    state: Dict[str, Any]
    events_delta: List[Dict[str, Any]] = Field(default_factory=list)
    history: HistoryOut


class RestoreResponse(SessionResponse):
    # false: стек пуст, состояние не менялось
    restored: bool


class SessionListResponse(BaseModel):
    session_ids: List[str]


class ErrorResponse(BaseModel):
    code: str
    message: str
    meta: Dict[str, Any] = Field(default_factory=dict)
    errors: Optional[List[Dict[str, Any]]] = None
