from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from combattracker.core.engine.state import CombatSession, Participant, utcnow
from combattracker.core.engine.turns import replace_participant
from combattracker.core.errors import NotFoundError, StorageError, ValidationError
from combattracker.core.persistence.state_codec import (
    SCHEMA_VERSION,
    pack_payload,
    session_from_payload,
)
from combattracker.db.models import CombatSessionRow

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Контракт хранилища снапшотов, от которого зависит движок."""

    def save(self, session: CombatSession) -> None: ...

    def load(self, session_id: str) -> CombatSession: ...

    def update_participant(
        self, session_id: str, participant_id: str, fields: Mapping[str, Any]
    ) -> CombatSession: ...

    def delete(self, session_id: str) -> None: ...

    def list(self) -> List[str]: ...


def _field_names_by_key() -> Dict[str, str]:
    # принимаем и python-имена (current_hp), и ключи хранения (currentHP)
    out: Dict[str, str] = {}
    for name, info in Participant.model_fields.items():
        out[name] = name
        if info.alias:
            out[info.alias] = name
    return out


_PARTICIPANT_KEYS = _field_names_by_key()


def merge_participant(participant: Participant, fields: Mapping[str, Any]) -> Participant:
    """Частичное обновление участника с полной валидацией результата."""
    updates: Dict[str, Any] = {}
    for key, value in fields.items():
        name = _PARTICIPANT_KEYS.get(key)
        if name is None:
            raise ValidationError(
                f"Unknown participant field: {key}",
                meta={"participant_id": participant.id, "field": key},
            )
        if name == "id" and value != participant.id:
            raise ValidationError(
                "Participant id cannot be changed",
                meta={"participant_id": participant.id},
            )
        updates[name] = value

    try:
        return Participant.model_validate({**participant.model_dump(), **updates})
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid participant update: {e.error_count()} error(s)",
            errors=e.errors(include_url=False, include_context=False),  # type: ignore[arg-type]
            meta={"participant_id": participant.id},
        ) from e


class _StoreBase:
    """Общая логика: лимит размера снапшота и update_participant через load/save."""

    def __init__(self, max_snapshot_bytes: Optional[int] = None):
        self.max_snapshot_bytes = max_snapshot_bytes

    def load(self, session_id: str) -> CombatSession:  # pragma: no cover
        raise NotImplementedError

    def save(self, session: CombatSession) -> None:  # pragma: no cover
        raise NotImplementedError

    def _serialize(self, session: CombatSession) -> str:
        raw = pack_payload(session)
        size = len(raw.encode("utf-8"))
        if self.max_snapshot_bytes is not None and size > self.max_snapshot_bytes:
            logger.warning(
                "snapshot %s is %d bytes, limit %d", session.id, size, self.max_snapshot_bytes
            )
            raise StorageError(
                "Storage quota exceeded",
                meta={
                    "session_id": session.id,
                    "size": size,
                    "limit": self.max_snapshot_bytes,
                },
            )
        return raw

    def update_participant(
        self, session_id: str, participant_id: str, fields: Mapping[str, Any]
    ) -> CombatSession:
        session = self.load(session_id)
        participant = session.get_participant(participant_id)
        if participant is None:
            raise NotFoundError(
                f"Participant not found: {participant_id}",
                meta={"session_id": session_id, "participant_id": participant_id},
            )

        updated = replace_participant(
            session, merge_participant(participant, fields), now=utcnow()
        )
        self.save(updated)
        return updated


class InMemorySessionStore(_StoreBase):
    """
    Key/value хранилище JSON-строк (аналог localStorage).

    Хранит сериализованный текст, а не объекты: load всегда проходит через
    валидацию, как и у SQL-хранилища.
    """

    def __init__(self, max_snapshot_bytes: Optional[int] = None):
        super().__init__(max_snapshot_bytes)
        self._items: Dict[str, str] = {}

    def save(self, session: CombatSession) -> None:
        self._items[session.id] = self._serialize(session)
        logger.debug("saved session %s (in-memory)", session.id)

    def put_raw(self, session_id: str, raw: str) -> None:
        """Положить «как есть» (импорт / тесты на битые данные)."""
        self._items[session_id] = raw

    def load(self, session_id: str) -> CombatSession:
        raw = self._items.get(session_id)
        if raw is None:
            raise NotFoundError(
                f"Session not found: {session_id}", meta={"session_id": session_id}
            )
        try:
            return session_from_payload(raw)
        except ValidationError:
            logger.warning("session %s failed validation on load", session_id)
            raise

    def delete(self, session_id: str) -> None:
        self._items.pop(session_id, None)

    def list(self) -> List[str]:
        return list(self._items)


class SqlSessionStore(_StoreBase):
    """Снапшоты в таблице combat_sessions (одна строка на сессию, last-write-wins)."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        max_snapshot_bytes: Optional[int] = None,
    ):
        super().__init__(max_snapshot_bytes)
        self._session_factory = session_factory

    def save(self, session: CombatSession) -> None:
        raw = self._serialize(session)
        try:
            with self._session_factory() as db:
                row = db.get(CombatSessionRow, session.id)
                if row is None:
                    row = CombatSessionRow(id=session.id)
                    db.add(row)
                row.owner_id = session.owner_id
                row.status = session.status
                row.schema_version = SCHEMA_VERSION
                row.state_json = raw
                db.commit()
        except SQLAlchemyError as e:
            logger.warning("failed to save session %s: %s", session.id, e)
            raise StorageError(
                f"Failed to save session: {session.id}",
                meta={"session_id": session.id},
            ) from e
        logger.debug("saved session %s", session.id)

    def load(self, session_id: str) -> CombatSession:
        try:
            with self._session_factory() as db:
                row = db.get(CombatSessionRow, session_id)
                raw = None if row is None else row.state_json
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to read session: {session_id}",
                meta={"session_id": session_id},
            ) from e

        if raw is None:
            raise NotFoundError(
                f"Session not found: {session_id}", meta={"session_id": session_id}
            )
        try:
            return session_from_payload(raw)
        except ValidationError:
            logger.warning("session %s failed validation on load", session_id)
            raise

    def delete(self, session_id: str) -> None:
        try:
            with self._session_factory() as db:
                row = db.get(CombatSessionRow, session_id)
                if row is not None:
                    db.delete(row)
                    db.commit()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to delete session: {session_id}",
                meta={"session_id": session_id},
            ) from e

    def list(self) -> List[str]:
        try:
            with self._session_factory() as db:
                rows = (
                    db.query(CombatSessionRow.id)
                    .order_by(CombatSessionRow.created_at.desc(), CombatSessionRow.id)
                    .all()
                )
        except SQLAlchemyError as e:
            logger.warning("failed to list sessions: %s", e)
            raise StorageError("Failed to list sessions") from e
        return [r[0] for r in rows]
