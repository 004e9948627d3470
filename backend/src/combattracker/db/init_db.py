from __future__ import annotations

from sqlalchemy import Engine

from . import models  # noqa: F401  (регистрирует таблицы в Base.metadata)
from .base import Base


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
