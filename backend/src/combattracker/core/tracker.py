from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional, Tuple

from combattracker.core.engine.commands import Command
from combattracker.core.engine.events import ev_history
from combattracker.core.engine.history import DEFAULT_MAX_DEPTH, HistoryCounts, HistoryManager
from combattracker.core.engine.rules.apply import Events, apply_command
from combattracker.core.engine.state import CombatSession
from combattracker.core.errors import StorageError
from combattracker.core.persistence.session_store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_LOG_ENTRIES = 500
DEFAULT_MAX_OPEN_SESSIONS = 64


class CombatTracker:
    """
    One open encounter: the live snapshot, its undo/redo history and the log.

    Every change goes the same way: compute the next snapshot, persist it,
    then checkpoint the previous one in the history. The store is injected;
    nothing here looks one up globally.
    """

    def __init__(
        self,
        store: SessionStore,
        session_id: str,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES,
    ):
        self.store = store
        self.max_log_entries = max_log_entries
        self.history: HistoryManager[CombatSession] = HistoryManager(max_depth)
        self.log: List[Dict[str, Any]] = []
        self.session = store.load(session_id)

    @property
    def session_id(self) -> str:
        return self.session.id

    def reload(self) -> CombatSession:
        """Перечитать из хранилища; история прошлого состояния больше не валидна."""
        self.session = self.store.load(self.session.id)
        self.history.clear()
        return self.session

    def _commit(self, new_session: CombatSession) -> None:
        # сначала сохраняем: если хранилище упало, трекер остаётся как был
        self.store.save(new_session)
        self.history.push_state(self.session)
        self.session = new_session

    def _append_log(self, entries: Events) -> None:
        self.log.extend(entries)
        # храним только хвост лога
        overflow = len(self.log) - self.max_log_entries
        if overflow > 0:
            del self.log[:overflow]

    def execute(self, cmd: Command) -> Tuple[CombatSession, Events]:
        new_session, events = apply_command(self.session, cmd)
        self._commit(new_session)
        self._append_log(events)
        logger.debug(
            "session %s: %s -> round %d turn %d",
            self.session.id,
            cmd.type,
            new_session.current_round_number,
            new_session.current_turn_index,
        )
        return new_session, events

    def update_participant(
        self, participant_id: str, fields: Mapping[str, Any]
    ) -> CombatSession:
        """Прямая правка из UI (форма участника) через хранилище."""
        previous = self.session
        updated = self.store.update_participant(self.session.id, participant_id, fields)
        self.history.push_state(previous)
        self.session = updated
        return updated

    def _restore(self, action: str) -> Optional[CombatSession]:
        current = self.session
        step = self.history.undo if action == "undo" else self.history.redo
        back = self.history.redo if action == "undo" else self.history.undo

        restored = step(current=current)
        if restored is None:
            return None

        try:
            self.store.save(restored)
        except StorageError:
            # вернуть стеки в исходное состояние и пробросить ошибку
            back(current=restored)
            raise

        self.session = restored
        self._append_log(
            [
                ev_history(
                    action=action,  # type: ignore[arg-type]
                    round_=restored.current_round_number,
                    turn_index=restored.current_turn_index,
                ).model_dump(mode="json")
            ]
        )
        return restored

    def undo(self) -> Optional[CombatSession]:
        return self._restore("undo")

    def redo(self) -> Optional[CombatSession]:
        return self._restore("redo")

    def get_history(self) -> HistoryCounts:
        return self.history.get_history()


class TrackerRegistry:
    """
    Открытые трекеры по session_id (одна активная правка на сессию).

    Не больше max_open трекеров: при переполнении выкидывается тот, к которому
    дольше всех не обращались. Снапшот у него уже сохранён, теряется только
    undo/redo история и лог.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_open: int = DEFAULT_MAX_OPEN_SESSIONS,
        max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES,
    ):
        if max_open < 1:
            raise ValueError("max_open must be >= 1")
        self.store = store
        self.max_depth = max_depth
        self.max_open = max_open
        self.max_log_entries = max_log_entries
        self._trackers: OrderedDict[str, CombatTracker] = OrderedDict()

    def __len__(self) -> int:
        return len(self._trackers)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._trackers

    def get(self, session_id: str) -> CombatTracker:
        tracker = self._trackers.get(session_id)
        if tracker is not None:
            self._trackers.move_to_end(session_id)
            return tracker

        tracker = CombatTracker(
            self.store,
            session_id,
            max_depth=self.max_depth,
            max_log_entries=self.max_log_entries,
        )
        self._trackers[session_id] = tracker
        while len(self._trackers) > self.max_open:
            evicted, _ = self._trackers.popitem(last=False)
            logger.debug("evicted tracker for session %s", evicted)
        return tracker

    def drop(self, session_id: str) -> None:
        self._trackers.pop(session_id, None)

    def clear(self) -> None:
        self._trackers.clear()
