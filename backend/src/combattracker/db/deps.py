from __future__ import annotations

from fastapi import Request

from combattracker.core.persistence.session_store import SessionStore
from combattracker.core.tracker import TrackerRegistry


def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_registry(request: Request) -> TrackerRegistry:
    return request.app.state.registry
