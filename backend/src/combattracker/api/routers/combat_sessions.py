from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from combattracker.api.schemas import (
    ApplyCommandRequest,
    CreateSessionRequest,
    ErrorResponse,
    HistoryOut,
    RestoreResponse,
    SessionListResponse,
    SessionResponse,
)
from combattracker.core.adapters.mapper import new_combat_session
from combattracker.core.engine.commands import Command
from combattracker.core.persistence.session_store import SessionStore
from combattracker.core.persistence.state_codec import session_to_dict
from combattracker.core.tracker import CombatTracker, TrackerRegistry
from combattracker.db.deps import get_registry, get_store

router = APIRouter(
    prefix="/combat-sessions",
    tags=["combat-sessions"],
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        507: {"model": ErrorResponse},
    },
)

_command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


def _response(
    tracker: CombatTracker, events_delta: List[Dict[str, Any]] | None = None
) -> SessionResponse:
    counts = tracker.get_history()
    return SessionResponse(
        session_id=tracker.session_id,
        state=session_to_dict(tracker.session),
        events_delta=events_delta or [],
        history=HistoryOut(undo_count=counts.undo_count, redo_count=counts.redo_count),
    )


@router.post("", response_model=SessionResponse)
def create_session(
    req: CreateSessionRequest,
    store: SessionStore = Depends(get_store),
    registry: TrackerRegistry = Depends(get_registry),
):
    session = new_combat_session(
        req.participants,
        owner_id=req.owner_id,
        encounter_id=req.encounter_id,
        org_id=req.org_id,
        lair_action_initiative=req.lair_action_initiative,
    )
    store.save(session)
    return _response(registry.get(session.id))


@router.get("", response_model=SessionListResponse)
def list_sessions(store: SessionStore = Depends(get_store)):
    return SessionListResponse(session_ids=store.list())


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(session_id: str, registry: TrackerRegistry = Depends(get_registry)):
    return _response(registry.get(session_id))


@router.delete("/{session_id}", status_code=204)
def delete_session(
    session_id: str,
    store: SessionStore = Depends(get_store),
    registry: TrackerRegistry = Depends(get_registry),
):
    store.delete(session_id)
    registry.drop(session_id)


@router.post("/{session_id}/commands:apply", response_model=SessionResponse)
def apply_command(
    session_id: str,
    req: ApplyCommandRequest,
    registry: TrackerRegistry = Depends(get_registry),
):
    try:
        cmd = _command_adapter.validate_python(req.command)
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False),
        )

    tracker = registry.get(session_id)
    _new_session, events = tracker.execute(cmd)
    return _response(tracker, events)


@router.patch("/{session_id}/participants/{participant_id}", response_model=SessionResponse)
def update_participant(
    session_id: str,
    participant_id: str,
    fields: Dict[str, Any] = Body(...),
    registry: TrackerRegistry = Depends(get_registry),
):
    tracker = registry.get(session_id)
    tracker.update_participant(participant_id, fields)
    return _response(tracker)


@router.post("/{session_id}/undo", response_model=RestoreResponse)
def undo(session_id: str, registry: TrackerRegistry = Depends(get_registry)):
    tracker = registry.get(session_id)
    restored = tracker.undo()
    base = _response(tracker, tracker.log[-1:] if restored is not None else [])
    return RestoreResponse(**base.model_dump(), restored=restored is not None)


@router.post("/{session_id}/redo", response_model=RestoreResponse)
def redo(session_id: str, registry: TrackerRegistry = Depends(get_registry)):
    tracker = registry.get(session_id)
    restored = tracker.redo()
    base = _response(tracker, tracker.log[-1:] if restored is not None else [])
    return RestoreResponse(**base.model_dump(), restored=restored is not None)


@router.get("/{session_id}/history", response_model=HistoryOut)
def get_history(session_id: str, registry: TrackerRegistry = Depends(get_registry)):
    counts = registry.get(session_id).get_history()
    return HistoryOut(undo_count=counts.undo_count, redo_count=counts.redo_count)
