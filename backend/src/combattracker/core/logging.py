"""
Logging setup for the tracker.

Modules log through ``logging.getLogger(__name__)``; ``setup_logging`` installs
a rich handler on the root logger once, at application start.
"""

from __future__ import annotations

import logging
from typing import Union

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure the root logger with a rich console handler.

    Args:
        level: logging level as int or name ("DEBUG", "INFO", ...).
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    console = Console(width=120, stderr=True)
    handler = RichHandler(
        console=console,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s - %(message)s", datefmt="[%X]"))

    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)

    # sqlalchemy слишком шумный на INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
