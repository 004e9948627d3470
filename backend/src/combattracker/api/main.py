from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from combattracker.api.routers.combat_sessions import router as combat_sessions_router
from combattracker.core.config import Settings, get_settings
from combattracker.core.errors import (
    CombatTrackerError,
    ConsistencyError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from combattracker.core.logging import setup_logging
from combattracker.core.persistence.session_store import SessionStore, SqlSessionStore
from combattracker.core.tracker import TrackerRegistry
from combattracker.db.init_db import init_db
from combattracker.db.session import make_engine, make_sessionmaker

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = {
    NotFoundError: 404,
    ConsistencyError: 409,
    ValidationError: 422,
    StorageError: 507,
}


def _status_for(exc: CombatTrackerError) -> int:
    for cls, status in _STATUS_BY_ERROR.items():
        if isinstance(exc, cls):
            return status
    return 400


def create_app(
    settings: Optional[Settings] = None, store: Optional[SessionStore] = None
) -> FastAPI:
    """
    Собрать приложение. Хранилище создаётся один раз на приложение и
    передаётся в роуты через app.state (никаких глобальных синглтонов).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        engine = None
        if store is None:
            engine = make_engine(settings.database_url)
            init_db(engine)
            app.state.store = SqlSessionStore(
                make_sessionmaker(engine), max_snapshot_bytes=settings.max_snapshot_bytes
            )
        else:
            app.state.store = store
        app.state.registry = TrackerRegistry(
            app.state.store,
            max_depth=settings.history_max_depth,
            max_open=settings.max_open_sessions,
            max_log_entries=settings.max_log_entries,
        )
        yield
        app.state.registry.clear()
        if engine is not None:
            engine.dispose()

    app = FastAPI(title="Combat Tracker", lifespan=lifespan)

    @app.exception_handler(CombatTrackerError)
    async def _tracker_error(request: Request, exc: CombatTrackerError):
        status = _status_for(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status, content=jsonable_encoder(exc.to_dict()))

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(combat_sessions_router)
    return app


app = create_app()
