from __future__ import annotations

from typing import Any, Optional


class CombatTrackerError(Exception):
    """Базовая ошибка трекера: code + message + meta (как CommandRejected)."""

    code = "COMBAT_TRACKER_ERROR"

    def __init__(self, message: str, *, meta: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.meta: dict[str, Any] = dict(meta or {})

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "meta": self.meta}


class NotFoundError(CombatTrackerError):
    """Нет сессии / участника / эффекта с таким id."""

    code = "NOT_FOUND"


class ValidationError(CombatTrackerError):
    """Сохранённый снапшот не прошёл структурную валидацию."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[list[dict[str, Any]]] = None,
        meta: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, meta=meta)
        self.errors: list[dict[str, Any]] = list(errors or [])

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["errors"] = self.errors
        return out


class StorageError(CombatTrackerError):
    """Ошибка записи, в том числе превышение лимита хранилища."""

    code = "STORAGE_ERROR"


class ConsistencyError(CombatTrackerError):
    """Операция хода над сессией без участников."""

    code = "CONSISTENCY_ERROR"
