from __future__ import annotations

import json
from typing import Any, Tuple, cast

from pydantic import ValidationError as PydanticValidationError

from combattracker.core.engine.state import CombatSession
from combattracker.core.errors import ValidationError

SCHEMA_VERSION = 1


# ---------- CombatSession codec ----------


def session_to_dict(session: CombatSession) -> dict[str, Any]:
    """Снапшот -> JSON-совместимый dict с camelCase ключами (формат хранения)."""
    return session.model_dump(mode="json", by_alias=True)


def session_from_dict(d: Any) -> CombatSession:
    """
    Восстановить CombatSession из сохранённого dict.

    Никаких дефолтов и «починки»: всё, что не проходит схему, -> ValidationError.
    """
    if not isinstance(d, dict):
        raise ValidationError(
            f"Snapshot must be an object, got {type(d).__name__}",
        )

    try:
        session = CombatSession.model_validate(d)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid combat session snapshot: {e.error_count()} error(s)",
            errors=cast(list[dict[str, Any]], e.errors(include_url=False, include_context=False)),
            meta={"session_id": d.get("id")},
        ) from e

    if not session.participants:
        raise ValidationError(
            "Invalid combat session snapshot: no participants",
            meta={"session_id": session.id},
        )
    return session


# ---------- storage envelope ----------


def pack_payload(session: CombatSession) -> str:
    return json.dumps(
        {"schema_version": SCHEMA_VERSION, "state": session_to_dict(session)},
        ensure_ascii=False,
    )


def unpack_payload(raw: str) -> Tuple[int, Any]:
    """
    Backward compatible:
    - старые записи хранят просто state (без обёртки) -> schema_version=1
    - новые хранят {schema_version, state}
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Snapshot is not valid JSON: {e}") from e

    if isinstance(data, dict) and "state" in data and "schema_version" in data:
        sv = data.get("schema_version")
        if not isinstance(sv, int) or sv > SCHEMA_VERSION:
            raise ValidationError(
                f"Unsupported snapshot schema_version: {sv!r}",
                meta={"schema_version": sv},
            )
        return sv, data["state"]

    return 1, data


def session_from_payload(raw: str) -> CombatSession:
    _sv, state = unpack_payload(raw)
    return session_from_dict(state)
