from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 50

T = TypeVar("T")


@dataclass(frozen=True)
class HistoryCounts:
    undo_count: int
    redo_count: int


class HistoryManager(Generic[T]):
    """
    Bounded undo/redo over full snapshots.

    The caller pushes the pre-mutation snapshot before applying a transform;
    the manager only remembers and hands back prior states. Both stacks are
    bounded deques, so overflow drops the oldest entries.

    ``undo`` / ``redo`` accept an optional ``current`` snapshot: when given it
    is what lands on the opposite stack instead of the returned entry, which
    lets a caller step back and forth between the live state and its
    checkpoints.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        if max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        self.max_depth = max_depth
        self._undo: Deque[T] = deque(maxlen=max_depth)
        self._redo: Deque[T] = deque(maxlen=max_depth)

    def push_state(self, snapshot: T) -> None:
        # новое действие инвалидирует redo-ветку
        self._redo.clear()
        if len(self._undo) == self.max_depth:
            logger.debug("history full (%d), dropping oldest snapshot", self.max_depth)
        self._undo.append(snapshot)

    def undo(self, current: Optional[T] = None) -> Optional[T]:
        if not self._undo:
            return None
        snapshot = self._undo.pop()
        self._redo.append(snapshot if current is None else current)
        return snapshot

    def redo(self, current: Optional[T] = None) -> Optional[T]:
        if not self._redo:
            return None
        snapshot = self._redo.pop()
        self._undo.append(snapshot if current is None else current)
        return snapshot

    def get_undo_count(self) -> int:
        return len(self._undo)

    def get_redo_count(self) -> int:
        return len(self._redo)

    def get_history(self) -> HistoryCounts:
        return HistoryCounts(undo_count=len(self._undo), redo_count=len(self._redo))

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
